"""HTTP/1.1 server loop for one worker, framed with h11 over asyncio streams."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from http import HTTPStatus

import h11

from loadready.config import HEADERS_TIMEOUT_SEC, KEEP_ALIVE_TIMEOUT_SEC
from loadready.server.app import PageApp, Response
from loadready.server.state import WorkerState

logger = logging.getLogger(__name__)

MAX_RECV = 64 * 1024


class HttpServer:
    """Serves a PageApp with keep-alive, timeouts and a draining shutdown."""

    def __init__(
        self,
        app: PageApp,
        keep_alive_timeout_sec: float = KEEP_ALIVE_TIMEOUT_SEC,
        headers_timeout_sec: float = HEADERS_TIMEOUT_SEC,
    ) -> None:
        self.app = app
        self.keep_alive_timeout_sec = keep_alive_timeout_sec
        self.headers_timeout_sec = headers_timeout_sec
        self.draining = False
        self._server: asyncio.AbstractServer | None = None
        self._connections: dict[_Connection, asyncio.Task[None]] = {}

    async def start(self, host: str, port: int, reuse_port: bool = False) -> None:
        self._server = await asyncio.start_server(
            self._on_connect,
            host,
            port,
            reuse_port=reuse_port or None,
        )

    @property
    def port(self) -> int:
        if self._server is None or not self._server.sockets:
            msg = "server is not listening"
            raise RuntimeError(msg)
        return self._server.sockets[0].getsockname()[1]

    @property
    def open_connections(self) -> int:
        return len(self._connections)

    async def shutdown(self) -> None:
        """Stop accepting, close idle connections and wait for in-flight ones."""
        self.draining = True
        if self._server is not None:
            self._server.close()
        # Let connections accepted just before close() reach connection_made.
        await asyncio.sleep(0)
        for conn in list(self._connections):
            if conn.idle:
                conn.close()
        pending = list(self._connections.values())
        if pending:
            await asyncio.wait(pending)
        if self._server is not None:
            await self._server.wait_closed()

    def _on_connect(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        # Registered synchronously from connection_made so shutdown sees it.
        conn = _Connection(self, reader, writer)
        self._connections[conn] = asyncio.get_running_loop().create_task(self._serve(conn))

    async def _serve(self, conn: _Connection) -> None:
        try:
            await conn.serve()
        finally:
            del self._connections[conn]


class _Connection:
    def __init__(
        self,
        server: HttpServer,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        self.server = server
        self.reader = reader
        self.writer = writer
        self.conn = h11.Connection(h11.SERVER)
        self.idle = False
        self.served = 0

    @property
    def state(self) -> WorkerState:
        return self.server.app.state

    async def serve(self) -> None:
        try:
            while await self._serve_one():
                self.conn.start_next_cycle()
        except h11.RemoteProtocolError as exc:
            self.state.record_error()
            logger.warning("Malformed request from %s: %s", self._peer(), exc)
            await self._send_error(exc.error_status_hint)
        except OSError as exc:
            self.state.record_error()
            logger.warning("Connection error from %s: %r", self._peer(), exc)
        except h11.LocalProtocolError:
            self.state.record_error()
            logger.exception("Failed to frame response for %s", self._peer())
        finally:
            await self._close()

    async def _serve_one(self) -> bool:
        event = await self._receive_request()
        if not isinstance(event, h11.Request):
            return False
        self.idle = False
        started = time.perf_counter()
        while True:
            body_event = await self._next_event(self.server.keep_alive_timeout_sec)
            if isinstance(body_event, h11.EndOfMessage):
                break
            if not isinstance(body_event, h11.Data):
                return False

        response = self.server.app.handle(
            event.method.decode("ascii"),
            event.target.decode("ascii", errors="replace"),
            [(name.decode("latin-1"), value.decode("latin-1")) for name, value in event.headers],
        )
        await self._send_response(response)
        if response.counts_as_request:
            self.state.record_request((time.perf_counter() - started) * 1000)
        self.served += 1
        return self.conn.our_state is h11.DONE and self.conn.their_state is h11.DONE

    async def _receive_request(self) -> h11.Event | None:
        # Idle wait is bounded by the keep-alive timeout; once bytes of the next
        # request arrive, the whole head must land within the headers timeout.
        # Only a connection between requests counts as idle for draining.
        loop = asyncio.get_running_loop()
        started = loop.time()
        received = bool(self.conn.trailing_data[0])
        while True:
            event = self.conn.next_event()
            if event is not h11.NEED_DATA:
                return event
            self.idle = self.served > 0 and not received
            if self.server.draining and self.idle:
                return None
            limit = self.server.headers_timeout_sec if received else self.server.keep_alive_timeout_sec
            remaining = started + limit - loop.time()
            data = await self._read(remaining)
            if data is None:
                logger.debug("Timed out waiting for request from %s", self._peer())
                return None
            self.conn.receive_data(data)
            received = received or bool(data)

    async def _next_event(self, timeout: float) -> h11.Event | None:
        while True:
            event = self.conn.next_event()
            if event is not h11.NEED_DATA:
                return event
            data = await self._read(timeout)
            if data is None:
                return None
            self.conn.receive_data(data)

    async def _read(self, timeout: float) -> bytes | None:
        if timeout <= 0:
            return None
        try:
            return await asyncio.wait_for(self.reader.read(MAX_RECV), timeout)
        except asyncio.TimeoutError:
            return None

    async def _send_response(self, response: Response) -> None:
        headers = list(response.headers)
        if self.server.draining:
            headers.append(("Connection", "close"))
        self._write(h11.Response(status_code=response.status, headers=headers))
        if response.body:
            self._write(h11.Data(data=response.body))
        self._write(h11.EndOfMessage())
        await self.writer.drain()

    async def _send_error(self, status: int) -> None:
        if self.conn.our_state not in (h11.IDLE, h11.SEND_RESPONSE):
            return
        body = f"{status} {HTTPStatus(status).phrase}\n".encode("ascii")
        try:
            self._write(
                h11.Response(
                    status_code=status,
                    headers=[
                        ("Content-Type", "text/plain; charset=utf-8"),
                        ("Content-Length", str(len(body))),
                        ("Connection", "close"),
                    ],
                )
            )
            self._write(h11.Data(data=body))
            self._write(h11.EndOfMessage())
            await self.writer.drain()
        except (OSError, h11.LocalProtocolError) as exc:
            logger.debug("Could not send %d to %s: %r", status, self._peer(), exc)

    def _write(self, event: h11.Event) -> None:
        data = self.conn.send(event)
        if data:
            self.writer.write(data)

    def close(self) -> None:
        self.writer.close()

    async def _close(self) -> None:
        self.writer.close()
        with contextlib.suppress(OSError):
            await self.writer.wait_closed()

    def _peer(self) -> str:
        peer = self.writer.get_extra_info("peername")
        if isinstance(peer, tuple) and len(peer) >= 2:
            return f"{peer[0]}:{peer[1]}"
        return str(peer)
