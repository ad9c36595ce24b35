# Copyright (c) 2025 Keshav
# Licensed under the GNU Affero General Public License v3.0
# See LICENSE file for details.
"""Broadcast sessions: one WebSocket observer each, with its own push loop.

Every session synthesizes and sends its own telemetry on its own
schedule; two sessions never share a payload.  Inbound control frames
are handled one at a time per session, while analysis requests run on
separate tasks so a slow service cannot delay the push loop.

The session registry and the mute flag belong to :class:`SessionManager`
and are passed to every session explicitly.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import uuid
from collections.abc import Coroutine
from enum import Enum
from typing import Any

from fastapi import WebSocket
from pydantic import BaseModel
from starlette.websockets import WebSocketState

from thermamind.analysis.gateway import AnalysisError, AnalysisGateway
from thermamind.engine.simulation import SimulationEngine
from thermamind.server.protocol import (
    AIAnswerMessage,
    AIErrorMessage,
    AIResponseMessage,
    AskAIMessage,
    AskQuestionMessage,
    GetMuteStateMessage,
    MalformedMessage,
    MuteMessage,
    MuteStateMessage,
    PingMessage,
    PongMessage,
    TelemetryMessage,
    UnmuteMessage,
    build_telemetry_payload,
    dump_message,
    parse_inbound,
)

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Connection lifecycle: connecting -> open -> closed."""

    connecting = "connecting"
    open = "open"
    closed = "closed"


class Session:
    """A single observer connection."""

    def __init__(self, websocket: WebSocket, manager: "SessionManager") -> None:
        self.id = uuid.uuid4().hex[:8]
        self.websocket = websocket
        self.manager = manager
        self.state = SessionState.connecting
        self._send_lock = asyncio.Lock()
        self._push_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.open

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Accept, push and dispatch until the peer goes away."""
        try:
            await self._open()
            await self._receive_loop()
        finally:
            await self.close()

    async def _open(self) -> None:
        # Registered under the send lock so a concurrent broadcast waits
        # until the accept frame is out.
        async with self._send_lock:
            self.manager.register(self)
            self.state = SessionState.open
            await self.websocket.accept()
        self._push_task = asyncio.create_task(
            self._push_loop(), name=f"telemetry-push-{self.id}"
        )
        logger.info(
            "Session %s connected (%d open)", self.id, len(self.manager.sessions)
        )

    async def close(self) -> None:
        """Stop the push loop and leave the registry.  Idempotent."""
        if self.state is SessionState.closed:
            return
        self.state = SessionState.closed
        self.manager.unregister(self)

        task = self._push_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if (
            self.websocket.application_state is WebSocketState.CONNECTED
            and self.websocket.client_state is WebSocketState.CONNECTED
        ):
            try:
                await self.websocket.close()
            except Exception as exc:
                logger.debug("Close handshake for session %s failed: %s", self.id, exc)

        logger.info(
            "Session %s disconnected (%d open)", self.id, len(self.manager.sessions)
        )

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send(self, message: BaseModel) -> bool:
        """Send *message*; a no-op returning False once the session is closed.

        A failed send means the peer is gone and closes the session.
        """
        if not self.is_open:
            return False
        data = dump_message(message)
        async with self._send_lock:
            if not self.is_open:
                return False
            try:
                await self.websocket.send_json(data)
                return True
            except Exception as exc:
                logger.info("Send to session %s failed (%s); closing", self.id, exc)
        await self.close()
        return False

    # ------------------------------------------------------------------
    # Loops
    # ------------------------------------------------------------------

    async def _push_loop(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.manager.push_interval
        deadline = loop.time() + interval

        while self.is_open:
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            deadline += interval
            if deadline < loop.time():
                # Fell more than a period behind; skip missed pushes.
                deadline = loop.time() + interval

            frame = self.manager.engine.build_frame(record_history=True)
            message = TelemetryMessage(payload=build_telemetry_payload(frame))
            if not await self.send(message):
                break

    async def _receive_loop(self) -> None:
        while self.is_open:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue
            await self.manager.handle_frame(self, raw)

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        """Run *coro* beside the session; its late sends become no-ops."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


class SessionManager:
    """Owns the session registry, the mute flag, and message dispatch."""

    def __init__(
        self,
        engine: SimulationEngine,
        gateway: AnalysisGateway,
        push_interval: float | None = None,
    ) -> None:
        self.engine = engine
        self.gateway = gateway
        self.push_interval = push_interval or engine.config.push_interval_seconds
        self.muted = False
        self._sessions: set[Session] = set()

    @property
    def sessions(self) -> list[Session]:
        return [s for s in self._sessions if s.is_open]

    def register(self, session: Session) -> None:
        self._sessions.add(session)

    def unregister(self, session: Session) -> None:
        self._sessions.discard(session)

    async def serve(self, websocket: WebSocket) -> None:
        """Run one session to completion."""
        await Session(websocket, self).run()

    async def close_all(self) -> None:
        for session in list(self._sessions):
            await session.close()

    async def broadcast(self, message: BaseModel) -> int:
        """Send *message* to every open session; returns how many received it."""
        targets = self.sessions
        if not targets:
            return 0
        results = await asyncio.gather(*(s.send(message) for s in targets))
        return sum(1 for ok in results if ok)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def handle_frame(self, session: Session, raw: str | bytes) -> None:
        try:
            message = parse_inbound(raw)
        except MalformedMessage as exc:
            logger.warning("Ignoring malformed frame from session %s: %s", session.id, exc)
            return
        if message is None:
            logger.debug("Ignoring unknown message kind from session %s", session.id)
            return
        await self.dispatch(session, message)

    async def dispatch(self, session: Session, message: BaseModel) -> None:
        if isinstance(message, PingMessage):
            await session.send(PongMessage())
        elif isinstance(message, (MuteMessage, UnmuteMessage)):
            await self.set_muted(isinstance(message, MuteMessage))
        elif isinstance(message, GetMuteStateMessage):
            await session.send(MuteStateMessage(muted=self.muted))
        elif isinstance(message, (AskAIMessage, AskQuestionMessage)):
            session.spawn(self._run_analysis(session, message))
        else:
            raise TypeError(f"No handler for {type(message).__name__}")

    async def set_muted(self, muted: bool) -> None:
        self.muted = muted
        delivered = await self.broadcast(MuteStateMessage(muted=muted))
        logger.info("Audio %s; notified %d sessions", "muted" if muted else "unmuted", delivered)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def _run_analysis(
        self, session: Session, message: AskAIMessage | AskQuestionMessage
    ) -> None:
        try:
            snapshot, stats = self.engine.analysis_frame()
            if isinstance(message, AskQuestionMessage):
                text = await self.gateway.answer(message.question, snapshot, stats)
            else:
                text = await self.gateway.analyze(snapshot, stats)
        except AnalysisError as exc:
            await session.send(AIErrorMessage(error=str(exc)))
            return
        except Exception:
            logger.exception("Analysis gateway crashed for session %s", session.id)
            await session.send(AIErrorMessage(error="Failed to generate AI analysis"))
            return

        audio = await self._speech(text) if message.with_audio and not self.muted else None

        reply: BaseModel
        if isinstance(message, AskQuestionMessage):
            reply = AIAnswerMessage(question=message.question, answer=text, audio=audio)
        else:
            reply = AIResponseMessage(text=text, audio=audio)
        if not await session.send(reply):
            logger.info("Session %s closed before analysis finished; result dropped", session.id)

    async def _speech(self, text: str) -> str | None:
        try:
            audio = await self.gateway.speak(text)
        except AnalysisError as exc:
            logger.warning("Speech unavailable, replying with text only: %s", exc)
            return None
        except Exception:
            logger.exception("Speech synthesis crashed; replying with text only")
            return None
        if not audio:
            return None
        return base64.b64encode(audio).decode("ascii")
