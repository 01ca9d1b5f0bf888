"""
SSE session registry.

A client opens ``GET /sse`` and gets a session id in the first ``endpoint``
event; every later ``POST /message?sessionId=<id>`` is routed to that
connection's protocol server and the reply is pushed back on the stream.

Sessions are OPEN until the stream ends (client disconnect, error, shutdown)
or ``unregister`` is called; a closed session never reopens.
"""
from __future__ import annotations

import json
import uuid
import asyncio
import logging
import threading
from typing import Any, AsyncIterator, Dict, Optional

from content_mcp.protocol import ProtocolServer

logger = logging.getLogger("sessions")

_CLOSE = object()


class SessionNotFound(Exception):
    """No open session for the given id"""
    def __init__(self, session_id: Optional[str]):
        super().__init__(f"No session found for sessionId={session_id!r}")
        self.session_id = session_id


class SseConnection:
    """One open event stream and the protocol server bound to it.

    At most ``max_queue`` frames wait for the client. A client that lets the
    queue fill up is treated as stalled and its session is closed.
    """

    def __init__(self, server: ProtocolServer, max_queue: int = 100):
        self.server = server
        self.session_id: Optional[str] = None
        self.closed = False
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=max_queue)

    def send(self, event: str, data: str) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait((event, data))
        except asyncio.QueueFull:
            logger.warning(json.dumps({"event": "session.stalled", "session": self.session_id, "queued": self._queue.qsize()}))
            self.close()
            return False
        return True

    async def handle(self, message: Any) -> Optional[Dict[str, Any]]:
        response = await self.server.handle_raw(message)
        if response is not None and not self.send("message", json.dumps(response, ensure_ascii=False)):
            logger.info(json.dumps({"event": "session.dropped_response", "session": self.session_id, "id": response.get("id")}))
        return response

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._queue.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            # make room for the sentinel; the stream is ending anyway
            self._queue.get_nowait()
            self._queue.put_nowait(_CLOSE)

    async def events(self, endpoint: str, keepalive: float = 15.0) -> AsyncIterator[str]:
        """SSE frames: the endpoint announcement, then queued messages until close"""
        yield f"event: endpoint\ndata: {endpoint}\n\n"
        while True:
            try:
                item = await asyncio.wait_for(self._queue.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                # keep alive comment
                yield ": ping\n\n"
                continue
            if item is _CLOSE:
                return
            event, data = item
            yield f"event: {event}\ndata: {data}\n\n"


class SessionRegistry:
    """session id -> open SseConnection; safe to share across concurrent requests"""

    def __init__(self) -> None:
        self._sessions: Dict[str, SseConnection] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            conn = self._sessions.get(session_id) if isinstance(session_id, str) else None
        return conn is not None and not conn.closed

    def register(self, connection: SseConnection) -> str:
        with self._lock:
            session_id = uuid.uuid4().hex
            while session_id in self._sessions:
                session_id = uuid.uuid4().hex
            connection.session_id = session_id
            self._sessions[session_id] = connection
            total = len(self._sessions)
        logger.info(json.dumps({"event": "session.open", "session": session_id, "open": total}))
        return session_id

    def get(self, session_id: Optional[str]) -> SseConnection:
        with self._lock:
            conn = self._sessions.get(session_id) if session_id else None
        if conn is None or conn.closed:
            raise SessionNotFound(session_id)
        return conn

    async def route(self, session_id: Optional[str], message: Any) -> Optional[Dict[str, Any]]:
        conn = self.get(session_id)
        return await conn.handle(message)

    def unregister(self, session_id: Optional[str]) -> None:
        with self._lock:
            conn = self._sessions.pop(session_id, None) if session_id else None
            total = len(self._sessions)
        if conn is None:
            return
        conn.close()
        logger.info(json.dumps({"event": "session.closed", "session": session_id, "open": total}))

    def close_all(self) -> None:
        with self._lock:
            conns = list(self._sessions.values())
            self._sessions.clear()
        for conn in conns:
            conn.close()
