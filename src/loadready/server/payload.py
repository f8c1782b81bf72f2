from __future__ import annotations

import gzip
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Payload:
    raw: bytes
    gzipped: bytes
    etag: str

    def body_for(self, use_gzip: bool) -> bytes:
        return self.gzipped if use_gzip else self.raw


def build_payload(html: str) -> Payload:
    raw = html.encode("utf-8")
    return Payload(
        raw=raw,
        gzipped=gzip.compress(raw, compresslevel=6),
        etag=f'W/"{len(raw):x}"',
    )
