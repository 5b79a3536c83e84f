from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .recipe import Recipe


class SavedRecipeEntity(BaseModel):
    """Stored recipe: where it came from plus its content as JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    document_url: str
    file_name: str
    tab_name: str
    downloaded_at_millis: int
    last_updated_millis: int
    times_made: int = 0
    content_json: str

    def recipe(self) -> Recipe:
        return Recipe.model_validate_json(self.content_json)

    def to_item(self) -> "SavedRecipeItem":
        return SavedRecipeItem(
            id=self.id,
            document_url=self.document_url,
            file_name=self.file_name,
            tab_name=self.tab_name,
            downloaded_at_millis=self.downloaded_at_millis,
            last_updated_millis=self.last_updated_millis,
            times_made=self.times_made,
            recipe=self.recipe(),
        )


class SavedRecipeItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    document_url: str
    file_name: str
    tab_name: str
    downloaded_at_millis: int
    last_updated_millis: int
    times_made: int
    recipe: Recipe


class SpreadsheetLoadResult(BaseModel):
    file_name: str
    recipes: List[Recipe] = []
