import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..core.navigation import OpenTaskEvent
from ..core.runtime import Runtime, get_runtime
from ..core.state_machine import Action
from ..models.recipe import Recipe
from ..models.session import RecipeSession

log = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartSessionRequest(CamelModel):
    saved_recipe_id: Optional[int] = None
    recipe: Optional[Recipe] = None


class SnoozeRequest(CamelModel):
    extra_millis: Optional[int] = None


class NotificationTap(CamelModel):
    step_index: int


def session_payload(runtime: Runtime, session: Optional[RecipeSession]) -> dict:
    if session is None:
        return {"active": False, "view": None}
    view = session.view(runtime.clock())
    return {
        "active": True,
        "phase": session.phase.value,
        "recipeId": session.recipe.id,
        "currentStepIndex": session.current_step_index,
        "nextAlarmAtMillis": session.next_alarm_at_millis,
        "totalSteps": len(session.steps),
        "view": view.model_dump(mode="json", by_alias=True) if view else None,
    }


@router.get("/session")
async def get_session(runtime: Runtime = Depends(get_runtime)):
    session = runtime.sessions.current()
    if session is None:
        raise HTTPException(status_code=404, detail="No recipe in progress")
    return session_payload(runtime, session)


@router.post("/session")
async def start_session(body: StartSessionRequest, runtime: Runtime = Depends(get_runtime)):
    recipe = body.recipe
    if body.saved_recipe_id is not None:
        item = runtime.saved_recipes.get_by_id(body.saved_recipe_id)
        if item is None:
            raise HTTPException(status_code=404, detail=f"Recipe {body.saved_recipe_id} not found")
        recipe = item.recipe
    if recipe is None:
        raise HTTPException(status_code=422, detail="Provide savedRecipeId or recipe")

    session = await runtime.sessions.start(recipe, body.saved_recipe_id)
    if body.saved_recipe_id is not None:
        runtime.saved_recipes.increment_times_made(body.saved_recipe_id)
    return session_payload(runtime, session)


@router.delete("/session")
async def cancel_session(runtime: Runtime = Depends(get_runtime)):
    cancelled = await runtime.sessions.cancel()
    return {"cancelled": cancelled is not None}


@router.post("/session/advance")
async def advance(runtime: Runtime = Depends(get_runtime)):
    return session_payload(runtime, await runtime.sessions.handle(Action.ADVANCE))


@router.post("/session/start-early")
async def start_early(runtime: Runtime = Depends(get_runtime)):
    return session_payload(runtime, await runtime.sessions.handle(Action.START_EARLY))


@router.post("/session/go-back")
async def go_back(runtime: Runtime = Depends(get_runtime)):
    return session_payload(runtime, await runtime.sessions.handle(Action.GO_BACK))


@router.post("/session/snooze")
async def snooze(body: Optional[SnoozeRequest] = None, runtime: Runtime = Depends(get_runtime)):
    extra = body.extra_millis if body else None
    return session_payload(runtime, await runtime.sessions.handle(Action.SNOOZE, extra))


@router.post("/session/finish")
async def finish(runtime: Runtime = Depends(get_runtime)):
    completed = await runtime.sessions.handle(Action.FINISH)
    times_made = None
    if completed.saved_recipe_id is not None:
        entity = runtime.saved_recipes.get_entity(completed.saved_recipe_id)
        times_made = entity.times_made if entity else None
    return {"recipeName": completed.name, "timesMade": times_made}


@router.post("/notifications/tap")
async def notification_tap(body: NotificationTap, runtime: Runtime = Depends(get_runtime)):
    if body.step_index < 0:
        raise HTTPException(status_code=422, detail="stepIndex must be non-negative")
    log.info(f"Notification for step {body.step_index} tapped")
    runtime.navigation.post(OpenTaskEvent(body.step_index))
    await runtime.alerts.stop()
    return {"queued": True}


@router.get("/navigation")
async def navigation(runtime: Runtime = Depends(get_runtime)):
    decision = runtime.navigation.resolve()
    return {
        "destination": decision.destination.value,
        "stepIndex": decision.step_index,
        "fromNotification": decision.from_notification,
    }
