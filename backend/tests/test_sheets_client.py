import asyncio

import httpx
import pytest

from backend.app.services.sheets_client import SheetsClient, SheetsError, extract_spreadsheet_id

SHEET_ID = "1AbC_def-123"

BREAD_CSV = "Start,Title,Description\n08:00,Feed starter,\n+4h,Mix,Flour and water\n"
ROLLS_CSV = "Start,Title,Description\n+1h,Proof,\n"
EMPTY_CSV = "Start,Title,Description\n,,\n"


def make_client(handler):
    return SheetsClient(default_spreadsheet_id=SHEET_ID, timeout=5, transport=httpx.MockTransport(handler))


def test_extract_spreadsheet_id():
    assert extract_spreadsheet_id(f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/edit#gid=0") == SHEET_ID
    assert extract_spreadsheet_id(f"  {SHEET_ID}  ") == SHEET_ID


def test_first_sheet_loaded_from_csv_export():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request.url)
        return httpx.Response(200, text=BREAD_CSV)

    result = asyncio.run(make_client(handler).load_recipes(f"https://docs.google.com/spreadsheets/d/{SHEET_ID}/edit"))

    assert result.file_name == SHEET_ID
    assert [r.name for r in result.recipes] == ["Recipe"]
    assert [s.title for s in result.recipes[0].steps] == ["Feed starter", "Mix"]
    assert seen[0].path == f"/spreadsheets/d/{SHEET_ID}/export"
    assert seen[0].params["gid"] == "0"


def test_blank_input_uses_default_spreadsheet():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request.url.path)
        return httpx.Response(200, text=BREAD_CSV)

    asyncio.run(make_client(handler).load_recipes("  "))

    assert SHEET_ID in seen[0]


def test_named_tabs_keep_only_recipes_with_steps():
    tabs = {"Bread": BREAD_CSV, "Rolls": ROLLS_CSV, "Notes": EMPTY_CSV}

    def handler(request: httpx.Request):
        assert request.url.params["tqx"] == "out:csv"
        return httpx.Response(200, text=tabs[request.url.params["sheet"]])

    result = asyncio.run(make_client(handler).load_recipes(SHEET_ID, ["Bread", "Rolls", "Notes"]))

    assert [r.name for r in result.recipes] == ["Bread", "Rolls"]
    assert result.recipes[1].steps[0].duration_millis == 3_600_000


def test_http_failure_raises_sheets_error():
    def handler(request: httpx.Request):
        return httpx.Response(404, text="nope")

    with pytest.raises(SheetsError):
        asyncio.run(make_client(handler).load_recipes(SHEET_ID))


def test_transport_failure_raises_sheets_error():
    def handler(request: httpx.Request):
        raise httpx.ConnectError("offline", request=request)

    with pytest.raises(SheetsError):
        asyncio.run(make_client(handler).load_single_tab(SHEET_ID, "Bread"))
