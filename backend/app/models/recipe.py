from __future__ import annotations

from typing import Tuple

from pydantic import BaseModel, ConfigDict, conint
from pydantic.alias_generators import to_camel


class RecipeStep(BaseModel):
    """One timed instruction.

    ``duration_millis`` is the wait after the previous step before this one
    begins; ``start_time`` keeps the raw sheet cell it was parsed from.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    start_time: str = ""
    title: str
    description: str = ""
    duration_millis: conint(ge=0) = 0


class Recipe(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    steps: Tuple[RecipeStep, ...] = ()

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
