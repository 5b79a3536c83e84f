"""
Google Sheets CSV export client.

Only publicly shared sheets are supported: the first tab through the plain
CSV export, named tabs through the visualization endpoint's CSV output.
"""

import logging
import re
from typing import Iterable, Optional

import httpx

from ..core.config import get_settings
from ..models.recipe import Recipe
from ..models.saved_recipe import SpreadsheetLoadResult
from .recipe_parser import RecipeParser

log = logging.getLogger(__name__)

SHEETS_BASE_URL = "https://docs.google.com/spreadsheets/d"
SPREADSHEET_ID_PATTERN = re.compile(r"/d/([a-zA-Z0-9_-]+)")
FIRST_SHEET_NAME = "Recipe"


class SheetsError(Exception):
    pass


def extract_spreadsheet_id(url_or_id: str) -> str:
    """Spreadsheet id from a sharing URL; anything else is taken as the id itself."""
    trimmed = url_or_id.strip()
    match = SPREADSHEET_ID_PATTERN.search(trimmed)
    return match.group(1) if match else trimmed


class SheetsClient:
    def __init__(
        self,
        default_spreadsheet_id: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.default_spreadsheet_id = default_spreadsheet_id or settings.default_spreadsheet_id
        self.timeout = timeout if timeout is not None else settings.sheets_timeout_seconds
        self.transport = transport

    def resolve_id(self, url_or_id: str) -> str:
        return extract_spreadsheet_id(url_or_id if url_or_id.strip() else self.default_spreadsheet_id)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport, follow_redirects=True)

    async def _fetch_csv(self, client: httpx.AsyncClient, url: str, params: dict) -> str:
        try:
            response = await client.get(url, params=params)
        except httpx.HTTPError as e:
            raise SheetsError(f"Failed to fetch CSV: {e}") from e
        if response.status_code != 200:
            raise SheetsError(f"Failed to fetch CSV: {response.status_code}")
        return response.text

    async def _load_first_sheet(self, client: httpx.AsyncClient, spreadsheet_id: str) -> Recipe:
        csv_text = await self._fetch_csv(
            client, f"{SHEETS_BASE_URL}/{spreadsheet_id}/export", {"format": "csv", "gid": 0}
        )
        return RecipeParser.compile_csv(csv_text, FIRST_SHEET_NAME)

    async def _load_tab(self, client: httpx.AsyncClient, spreadsheet_id: str, tab: str) -> Recipe:
        csv_text = await self._fetch_csv(
            client, f"{SHEETS_BASE_URL}/{spreadsheet_id}/gviz/tq", {"tqx": "out:csv", "sheet": tab}
        )
        return RecipeParser.compile_csv(csv_text, tab)

    async def load_recipes(self, url_or_id: str, tabs: Optional[Iterable[str]] = None) -> SpreadsheetLoadResult:
        spreadsheet_id = self.resolve_id(url_or_id)
        tab_names = [t.strip() for t in tabs or [] if t and t.strip()]
        async with self._client() as client:
            if not tab_names:
                log.info(f"Loading first sheet of {spreadsheet_id}")
                recipe = await self._load_first_sheet(client, spreadsheet_id)
                log.info(f"Loaded recipe '{recipe.name}' ({len(recipe.steps)} steps)")
                return SpreadsheetLoadResult(file_name=spreadsheet_id, recipes=[recipe])

            recipes = []
            for tab in tab_names:
                recipe = await self._load_tab(client, spreadsheet_id, tab)
                if recipe.steps:
                    recipes.append(recipe)
                    log.info(f"Loaded recipe '{tab}' ({len(recipe.steps)} steps)")
                else:
                    log.warning(f"Tab '{tab}' has no steps, skipping")
            return SpreadsheetLoadResult(file_name=spreadsheet_id, recipes=recipes)

    async def load_single_tab(self, url_or_id: str, tab: str) -> Recipe:
        spreadsheet_id = self.resolve_id(url_or_id)
        async with self._client() as client:
            if tab == FIRST_SHEET_NAME:
                return await self._load_first_sheet(client, spreadsheet_id)
            return await self._load_tab(client, spreadsheet_id, tab)
