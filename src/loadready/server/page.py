from __future__ import annotations

import html
from datetime import datetime
from string import Template

_PAGE = Template(
    """<!DOCTYPE html>
<html lang="en" data-theme="dark">
<head>
  <meta charset="UTF-8" />
  <title>$title</title>
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <style>
    :root {
      --bg: #0f172a;
      --card: #020617;
      --border: #1e293b;
      --text: #e5e7eb;
      --muted: #9ca3af;
      --faint: #6b7280;
    }
    [data-theme="light"] {
      --bg: #f1f5f9;
      --card: #ffffff;
      --border: #cbd5e1;
      --text: #0f172a;
      --muted: #475569;
      --faint: #64748b;
    }
    body {
      font-family: system-ui, -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
      margin: 0;
      padding: 0;
      background: var(--bg);
      color: var(--text);
      display: flex;
      align-items: center;
      justify-content: center;
      min-height: 100vh;
      transition: background 0.2s ease, color 0.2s ease;
    }
    .card {
      position: relative;
      background: var(--card);
      border-radius: 16px;
      padding: 32px 40px;
      max-width: 540px;
      width: 100%;
      box-shadow: 0 20px 40px rgba(15, 23, 42, 0.6);
      border: 1px solid var(--border);
    }
    .badge {
      display: inline-flex;
      align-items: center;
      font-size: 12px;
      padding: 4px 10px;
      border-radius: 999px;
      background: #0f766e;
      color: #ecfeff;
      text-transform: uppercase;
      letter-spacing: 0.08em;
      margin-bottom: 12px;
    }
    .toggle {
      position: absolute;
      top: 24px;
      right: 24px;
      border: 1px solid var(--border);
      background: transparent;
      color: var(--muted);
      border-radius: 999px;
      padding: 4px 12px;
      font-size: 12px;
      cursor: pointer;
    }
    h1 {
      margin: 0 0 8px;
      font-size: 28px;
    }
    p {
      margin: 0 0 18px;
      color: var(--muted);
      line-height: 1.5;
    }
    .status {
      margin-top: 12px;
      padding: 12px 14px;
      border-radius: 12px;
      border: 1px solid var(--border);
      display: flex;
      align-items: center;
      gap: 8px;
      font-size: 14px;
    }
    .dot {
      width: 10px;
      height: 10px;
      border-radius: 999px;
      background: #22c55e;
      box-shadow: 0 0 10px rgba(34, 197, 94, 0.9);
    }
    .meta {
      margin-top: 18px;
      display: flex;
      justify-content: space-between;
      font-size: 12px;
      color: var(--faint);
    }
    code {
      font-family: ui-monospace, SFMono-Regular, Menlo, Monaco, Consolas, monospace;
      padding: 2px 4px;
      border-radius: 4px;
      border: 1px solid var(--border);
      font-size: 12px;
    }
  </style>
</head>
<body>
  <main class="card">
    <button class="toggle" id="theme-toggle" type="button">Light mode</button>
    <div class="badge">$badge</div>
    <h1>$title</h1>
    <p>
      If you can see this page, your deployment pipeline is working.
      Every worker process serves this same pre-rendered, pre-compressed page.
    </p>

    <div class="status">
      <div class="dot"></div>
      <div>
        <strong>Environment:</strong> <span>$environment</span><br />
        <small>Last deployment: <span id="deploy-time">$deployed_at</span></small>
      </div>
    </div>

    <div class="meta">
      <span>Health: <code>/health</code></span>
      <span>Metrics: <code>/metrics</code></span>
    </div>
  </main>
  <script>
    (function () {
      var root = document.documentElement;
      var button = document.getElementById("theme-toggle");
      function apply(theme) {
        root.setAttribute("data-theme", theme);
        button.textContent = theme === "dark" ? "Light mode" : "Dark mode";
      }
      var saved = null;
      try { saved = window.localStorage.getItem("theme"); } catch (e) {}
      apply(saved === "light" ? "light" : "dark");
      button.addEventListener("click", function () {
        var next = root.getAttribute("data-theme") === "dark" ? "light" : "dark";
        apply(next);
        try { window.localStorage.setItem("theme", next); } catch (e) {}
      });
    })();
  </script>
</body>
</html>
"""
)


def render_page(
    deployed_at: datetime,
    title: str = "Demo App",
    environment: str = "Production",
) -> str:
    return _PAGE.substitute(
        title=html.escape(title),
        badge="Demo",
        environment=html.escape(environment),
        deployed_at=deployed_at.strftime("%Y-%m-%d %H:%M:%S %Z").strip(),
    )
