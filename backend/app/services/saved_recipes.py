"""
Saved recipes kept in a single JSON file.
"""

import itertools
import logging
import threading
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from ..core.clock import Clock, now_millis
from ..core.preferences import PreferencesFile
from ..models.recipe import Recipe
from ..models.saved_recipe import SavedRecipeEntity, SavedRecipeItem, SpreadsheetLoadResult
from .sheets_client import SheetsClient

log = logging.getLogger(__name__)

RECIPES_KEY = "recipes"

_entity_list = TypeAdapter(List[SavedRecipeEntity])


class RecipeNotFoundError(LookupError):
    pass


class SavedRecipeRepository:
    def __init__(self, path: Path, sheets: Optional[SheetsClient] = None, clock: Clock = now_millis):
        self.file = PreferencesFile(path)
        self.sheets = sheets
        self.clock = clock
        self._lock = threading.RLock()
        self._ids = itertools.count(clock() + 1)

    def _next_id(self, existing: List[SavedRecipeEntity]) -> int:
        highest = max((e.id for e in existing), default=0)
        new_id = next(self._ids)
        while new_id <= highest:
            new_id = next(self._ids)
        return new_id

    def _load(self) -> List[SavedRecipeEntity]:
        try:
            payload = self.file.get(RECIPES_KEY)
        except ValueError as e:
            log.warning(f"Saved recipes unreadable, starting empty: {e}")
            return []
        if payload is None:
            return []
        try:
            return _entity_list.validate_python(payload)
        except ValidationError as e:
            log.warning(f"Saved recipes invalid, starting empty: {e}")
            return []

    def _save(self, entities: List[SavedRecipeEntity]) -> None:
        self.file.put(RECIPES_KEY, _entity_list.dump_python(entities, mode="json", by_alias=True))

    def list_all(self) -> List[SavedRecipeItem]:
        with self._lock:
            return [e.to_item() for e in self._load()]

    def get_entity(self, recipe_id: int) -> Optional[SavedRecipeEntity]:
        with self._lock:
            return next((e for e in self._load() if e.id == recipe_id), None)

    def get_by_id(self, recipe_id: int) -> Optional[SavedRecipeItem]:
        entity = self.get_entity(recipe_id)
        return entity.to_item() if entity else None

    def delete_by_id(self, recipe_id: int) -> None:
        with self._lock:
            self._save([e for e in self._load() if e.id != recipe_id])

    def _update(self, recipe_id: int, **changes) -> Optional[SavedRecipeEntity]:
        with self._lock:
            entities = self._load()
            updated = None
            for i, e in enumerate(entities):
                if e.id == recipe_id:
                    updated = e.model_copy(update=changes)
                    entities[i] = updated
            self._save(entities)
            return updated

    def increment_times_made(self, recipe_id: int) -> Optional[SavedRecipeEntity]:
        entity = self.get_entity(recipe_id)
        if entity is None:
            return None
        return self._update(recipe_id, times_made=entity.times_made + 1, last_updated_millis=self.clock())

    def touch_last_updated(self, recipe_id: int) -> Optional[SavedRecipeEntity]:
        return self._update(recipe_id, last_updated_millis=self.clock())

    def _touched(self, entities: List[SavedRecipeEntity], recipe_id: int) -> List[SavedRecipeEntity]:
        now = self.clock()
        return [e.model_copy(update={"last_updated_millis": now}) if e.id == recipe_id else e for e in entities]

    def insert(self, entity: SavedRecipeEntity) -> int:
        with self._lock:
            entities = self._load()
            new_id = self._next_id(entities)
            entities.append(entity.model_copy(update={"id": new_id}))
            self._save(entities)
            return new_id

    def _new_entity(self, entities, document_url, file_name, recipe: Recipe, content_json: str) -> SavedRecipeEntity:
        now = self.clock()
        return SavedRecipeEntity(
            id=self._next_id(entities),
            document_url=document_url,
            file_name=file_name,
            tab_name=recipe.name,
            downloaded_at_millis=now,
            last_updated_millis=now,
            times_made=0,
            content_json=content_json,
        )

    def add_or_update_from_load(self, document_url: str, result: SpreadsheetLoadResult) -> List[int]:
        """Store freshly loaded recipes and return the ids they are saved under.

        Unchanged content only refreshes ``last_updated_millis``; changed
        content is stored as a new record next to the old one.
        """
        url = document_url.strip()
        ids = []
        with self._lock:
            entities = self._load()
            for recipe in result.recipes:
                content_json = recipe.to_json()
                match = next(
                    (e for e in entities
                     if e.document_url == url and e.tab_name == recipe.name and e.content_json == content_json),
                    None,
                )
                if match is not None:
                    entities = self._touched(entities, match.id)
                    ids.append(match.id)
                else:
                    entity = self._new_entity(entities, url, result.file_name, recipe, content_json)
                    entities.append(entity)
                    ids.append(entity.id)
            self._save(entities)
        return ids

    async def load_from_sheet(self, url: str, tabs=None) -> SpreadsheetLoadResult:
        return await self.sheets.load_recipes(url, tabs)

    async def import_from_sheet(self, url: str, tabs=None) -> List[int]:
        result = await self.load_from_sheet(url, tabs)
        return self.add_or_update_from_load(url, result)

    async def refresh_recipe(self, recipe_id: int) -> int:
        """Re-fetch one saved tab. Returns the id now holding its latest content."""
        existing = self.get_entity(recipe_id)
        if existing is None:
            raise RecipeNotFoundError(f"Recipe {recipe_id} not found")
        recipe = await self.sheets.load_single_tab(existing.document_url, existing.tab_name)
        content_json = recipe.to_json()
        if content_json == existing.content_json:
            self.touch_last_updated(recipe_id)
            return recipe_id
        with self._lock:
            entities = self._load()
            entity = self._new_entity(entities, existing.document_url, existing.file_name, recipe, content_json)
            entity = entity.model_copy(update={"tab_name": existing.tab_name})
            entities.append(entity)
            self._save(entities)
        return entity.id
