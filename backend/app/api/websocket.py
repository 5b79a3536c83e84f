from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
import logging
from typing import Optional

from ..core.alerts import WebSocketAlertHub
from ..core.runtime import Runtime, get_runtime
from ..core.state_machine import Action, SessionError
from ..models.session import RecipeSession

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1")


def classify_command(text: str) -> Optional[Action]:
    """Keyword-based mapping of client commands to session actions."""
    text = text.lower().strip()

    if any(keyword in text for keyword in ["cancel", "abandon", "quit"]):
        return Action.CANCEL

    if any(keyword in text for keyword in ["back", "previous", "undo"]):
        return Action.GO_BACK

    if any(keyword in text for keyword in ["snooze", "add 1 minute", "more time", "later"]):
        return Action.SNOOZE

    if any(keyword in text for keyword in ["start", "begin"]):
        return Action.START_EARLY

    if "finish" in text:
        return Action.FINISH

    if any(keyword in text for keyword in ["done", "next", "continue"]):
        return Action.ADVANCE

    return None


def resolve_done(action: Action, session: Optional[RecipeSession]) -> Action:
    # "Done" on the last step means finishing the recipe.
    if action == Action.ADVANCE and session is not None and not session.is_waiting and session.is_last_step:
        return Action.FINISH
    return action


@router.websocket("/ws")
async def session_websocket(ws: WebSocket, runtime: Runtime = Depends(get_runtime)):
    await ws.accept()
    hub = runtime.alerts if isinstance(runtime.alerts, WebSocketAlertHub) else None
    session = runtime.store.restore_raw()
    if hub is not None:
        await hub.connect(ws, session)
    log.info("Session client connected")

    try:
        while True:
            text = await ws.receive_text()
            action = classify_command(text)
            if action is None:
                await ws.send_json({"type": "error", "message": f"Unknown command: {text[:50]}"})
                continue
            action = resolve_done(action, runtime.store.restore_raw())
            try:
                result = await runtime.sessions.handle(action)
            except SessionError as e:
                await ws.send_json({"type": "error", "message": str(e)})
                continue
            if action == Action.FINISH:
                await ws.send_json({"type": "finished", "recipeName": result.name})
            elif hub is None:
                await ws.send_json({"type": "ok", "action": action.value})
    except WebSocketDisconnect:
        log.info("Session client disconnected")
    finally:
        if hub is not None:
            hub.disconnect(ws)
