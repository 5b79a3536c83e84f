from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, conint, model_validator
from pydantic.alias_generators import to_camel

from .recipe import Recipe, RecipeStep

SESSION_SCHEMA_VERSION = 1


class SessionPhase(str, Enum):
    ACTIVE_STEP = "active_step"
    WAITING = "waiting"


class ActiveStepView(BaseModel):
    """The session shows ``step`` and waits for the user to act on it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    kind: Literal["active_step"] = "active_step"
    recipe_name: str
    step_index: int
    step: RecipeStep
    has_next_step: bool
    can_go_back: bool


class WaitingView(BaseModel):
    """The session counts down to ``next_step``; ``remaining_millis`` goes negative once due."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    kind: Literal["waiting"] = "waiting"
    recipe_name: str
    next_step_index: int
    next_step: RecipeStep
    trigger_at_millis: int
    remaining_millis: int


SessionView = Union[ActiveStepView, WaitingView]


class RecipeSession(BaseModel):
    """Progress cursor over a started recipe.

    ``next_alarm_at_millis == 0`` is the active-step state; any other value is
    the wall-clock time the wait for the following step ends.
    """

    recipe: Recipe
    current_step_index: conint(ge=0) = 0
    next_alarm_at_millis: conint(ge=0) = 0
    saved_recipe_id: Optional[int] = None

    @model_validator(mode="after")
    def _index_in_range(self) -> "RecipeSession":
        if self.current_step_index > len(self.recipe.steps):
            raise ValueError("current_step_index past the end of the recipe")
        return self

    @property
    def steps(self):
        return self.recipe.steps

    @property
    def current_step(self) -> Optional[RecipeStep]:
        if self.current_step_index < len(self.steps):
            return self.steps[self.current_step_index]
        return None

    @property
    def next_step_index(self) -> int:
        return self.current_step_index + 1

    @property
    def next_step(self) -> Optional[RecipeStep]:
        if self.next_step_index < len(self.steps):
            return self.steps[self.next_step_index]
        return None

    @property
    def has_next_step(self) -> bool:
        return self.current_step_index < len(self.steps) - 1

    @property
    def is_last_step(self) -> bool:
        return self.current_step_index >= len(self.steps) - 1

    @property
    def phase(self) -> SessionPhase:
        if self.next_alarm_at_millis != 0:
            return SessionPhase.WAITING
        return SessionPhase.ACTIVE_STEP

    @property
    def is_waiting(self) -> bool:
        return self.phase is SessionPhase.WAITING

    def view(self, now_millis: int) -> Optional[SessionView]:
        if self.is_waiting and self.next_step is not None:
            return WaitingView(
                recipe_name=self.recipe.name,
                next_step_index=self.next_step_index,
                next_step=self.next_step,
                trigger_at_millis=self.next_alarm_at_millis,
                remaining_millis=self.next_alarm_at_millis - now_millis,
            )
        step = self.current_step
        if step is None:
            return None
        return ActiveStepView(
            recipe_name=self.recipe.name,
            step_index=self.current_step_index,
            step=step,
            has_next_step=self.has_next_step,
            can_go_back=self.current_step_index > 0,
        )

    def to_record(self) -> "SessionRecord":
        return SessionRecord(
            recipe_id=self.recipe.id,
            recipe_name=self.recipe.name,
            steps=list(self.steps),
            current_step_index=self.current_step_index,
            next_alarm_at_millis=self.next_alarm_at_millis,
            saved_recipe_id=self.saved_recipe_id,
        )

    @classmethod
    def from_record(cls, record: "SessionRecord") -> "RecipeSession":
        recipe = Recipe(id=record.recipe_id, name=record.recipe_name, steps=tuple(record.steps))
        return cls(
            recipe=recipe,
            current_step_index=record.current_step_index,
            next_alarm_at_millis=record.next_alarm_at_millis,
            saved_recipe_id=record.saved_recipe_id,
        )


class SessionRecord(BaseModel):
    """Durable form of a session, shared across app runs.

    Required: ``recipeId``, ``recipeName``, ``steps``, ``currentStepIndex``.
    Defaults: ``schemaVersion`` 1, ``nextAlarmAtMillis`` 0 (not waiting),
    ``savedRecipeId`` null. Step fields default to "" / 0 except ``title``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    schema_version: int = SESSION_SCHEMA_VERSION
    recipe_id: str
    recipe_name: str
    steps: List[RecipeStep]
    current_step_index: conint(ge=0)
    next_alarm_at_millis: conint(ge=0) = 0
    saved_recipe_id: Optional[int] = Field(default=None)

    @model_validator(mode="after")
    def _check(self) -> "SessionRecord":
        if self.schema_version != SESSION_SCHEMA_VERSION:
            raise ValueError(f"unsupported session schema version {self.schema_version}")
        if self.current_step_index > len(self.steps):
            raise ValueError("currentStepIndex past the end of steps")
        return self

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
