"""
User-facing alerts.

The backend cannot ring or buzz anything itself; connected clients do that
when they receive the messages broadcast here.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from ..models.session import RecipeSession
from .clock import Clock, now_millis
from .countdown import Countdown, format_remaining

log = logging.getLogger(__name__)

VIBRATION_PATTERN = (0, 500, 200, 500)
NOTIFICATION_TEXT_LIMIT = 100


def notification_text(description: str) -> str:
    if len(description) > NOTIFICATION_TEXT_LIMIT:
        return description[:NOTIFICATION_TEXT_LIMIT] + "..."
    return description


class AlertSink(ABC):
    @abstractmethod
    async def play_sound(self) -> None: ...

    @abstractmethod
    async def vibrate(self, pattern: Sequence[int] = VIBRATION_PATTERN) -> None: ...

    @abstractmethod
    async def notify(self, title: str, text: str, step_index: int) -> None: ...

    @abstractmethod
    async def stop(self) -> None:
        """Silence a ringing alert; harmless when nothing rings."""

    async def session_changed(self, session: Optional[RecipeSession]) -> None:
        pass


class WebSocketAlertHub(AlertSink):
    def __init__(self, clock: Clock = now_millis, tick_interval: float = 1.0):
        self.clock = clock
        self.tick_interval = tick_interval
        self.connections: Dict[WebSocket, Countdown] = {}
        self.ringing = False

    async def connect(self, ws: WebSocket, session: Optional[RecipeSession]) -> None:
        async def tick(remaining: int):
            await self._send(ws, {
                "type": "tick",
                "remainingMillis": remaining,
                "display": format_remaining(remaining),
            })

        countdown = Countdown(tick, clock=self.clock, interval=self.tick_interval)
        self.connections[ws] = countdown
        log.info(f"Alert client connected ({len(self.connections)} total)")
        await self._send(ws, self._session_message(session))
        countdown.retarget(session.next_alarm_at_millis if session else 0)

    def disconnect(self, ws: WebSocket) -> None:
        countdown = self.connections.pop(ws, None)
        if countdown is not None:
            countdown.cancel()
            log.info(f"Alert client disconnected ({len(self.connections)} left)")

    async def play_sound(self) -> None:
        self.ringing = True
        await self.broadcast({"type": "alarm_sound"})

    async def vibrate(self, pattern: Sequence[int] = VIBRATION_PATTERN) -> None:
        await self.broadcast({"type": "vibrate", "pattern": list(pattern)})

    async def notify(self, title: str, text: str, step_index: int) -> None:
        await self.broadcast({
            "type": "notification",
            "title": title,
            "text": notification_text(text),
            "stepIndex": step_index,
        })

    async def stop(self) -> None:
        if not self.ringing:
            return
        self.ringing = False
        await self.broadcast({"type": "alarm_stop"})

    async def session_changed(self, session: Optional[RecipeSession]) -> None:
        message = self._session_message(session)
        trigger = session.next_alarm_at_millis if session else 0
        for ws, countdown in list(self.connections.items()):
            countdown.retarget(trigger)
            await self._send(ws, message)

    async def broadcast(self, message: Dict[str, Any]) -> None:
        if not self.connections:
            log.warning(f"No alert clients connected, '{message['type']}' not delivered")
            return
        for ws in list(self.connections):
            await self._send(ws, message)

    def _session_message(self, session: Optional[RecipeSession]) -> Dict[str, Any]:
        view = session.view(self.clock()) if session else None
        return {
            "type": "session",
            "view": view.model_dump(mode="json", by_alias=True) if view else None,
        }

    async def _send(self, ws: WebSocket, message: Dict[str, Any]) -> None:
        if ws.application_state != WebSocketState.CONNECTED:
            self.disconnect(ws)
            return
        try:
            await ws.send_json(message)
        except Exception as e:
            log.warning(f"Dropping alert client after send failure: {e}")
            self.disconnect(ws)
