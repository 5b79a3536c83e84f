import asyncio

import pytest

from backend.app.models.saved_recipe import SavedRecipeEntity
from backend.app.services.saved_recipes import RecipeNotFoundError, SavedRecipeRepository

from conftest import HOUR, MINUTE, URL, FakeSheets, make_recipe


@pytest.fixture
def repo(tmp_path, clock):
    sheets = FakeSheets([make_recipe(0, HOUR, name="Bread"), make_recipe(0, MINUTE, name="Rolls")])
    return SavedRecipeRepository(tmp_path / "saved_recipes.json", sheets, clock)


def test_import_stores_each_tab(repo):
    ids = asyncio.run(repo.import_from_sheet(URL))

    items = repo.list_all()
    assert [i.tab_name for i in items] == ["Bread", "Rolls"]
    assert [i.id for i in items] == ids
    assert len(set(ids)) == 2
    assert items[0].recipe.steps[1].duration_millis == HOUR
    assert items[0].times_made == 0
    assert items[0].document_url == URL


def test_reimport_same_content_only_touches(repo, clock):
    first = asyncio.run(repo.import_from_sheet(URL))
    clock.advance(MINUTE)

    second = asyncio.run(repo.import_from_sheet(URL, ["Bread"]))

    assert second == first[:1]
    bread = repo.get_by_id(first[0])
    assert bread.last_updated_millis == clock()
    assert bread.downloaded_at_millis == clock() - MINUTE
    assert len(repo.list_all()) == 2


def test_changed_content_is_stored_alongside(repo):
    [old_id] = asyncio.run(repo.import_from_sheet(URL, ["Bread"]))
    repo.sheets.recipes["Bread"] = make_recipe(0, 2 * HOUR, name="Bread")

    new_id = asyncio.run(repo.refresh_recipe(old_id))

    assert new_id != old_id
    assert repo.get_by_id(old_id).recipe.steps[1].duration_millis == HOUR
    assert repo.get_by_id(new_id).recipe.steps[1].duration_millis == 2 * HOUR
    assert repo.get_by_id(new_id).tab_name == "Bread"


def test_refresh_unchanged_keeps_id(repo, clock):
    [bread_id] = asyncio.run(repo.import_from_sheet(URL, ["Bread"]))
    clock.advance(MINUTE)

    assert asyncio.run(repo.refresh_recipe(bread_id)) == bread_id

    bread = repo.get_by_id(bread_id)
    assert bread.last_updated_millis == clock()
    assert bread.downloaded_at_millis == clock() - MINUTE
    assert len(repo.list_all()) == 1


def test_touch_unknown_recipe(repo):
    assert repo.touch_last_updated(999) is None


def test_refresh_unknown_recipe(repo):
    with pytest.raises(RecipeNotFoundError):
        asyncio.run(repo.refresh_recipe(12345))


def test_times_made_and_delete(repo):
    [bread_id, rolls_id] = asyncio.run(repo.import_from_sheet(URL))

    repo.increment_times_made(bread_id)
    repo.increment_times_made(bread_id)
    assert repo.get_by_id(bread_id).times_made == 2
    assert repo.increment_times_made(999) is None

    repo.delete_by_id(rolls_id)
    assert [i.id for i in repo.list_all()] == [bread_id]


def test_insert_assigns_fresh_id(repo):
    entity = SavedRecipeEntity(
        id=0,
        document_url=URL,
        file_name="abc",
        tab_name="Bread",
        downloaded_at_millis=1,
        last_updated_millis=1,
        content_json=make_recipe(0, name="Bread").to_json(),
    )
    first = repo.insert(entity)
    second = repo.insert(entity)

    assert second > first > 0
    assert repo.get_by_id(first).recipe.name == "Bread"


def test_unreadable_file_reads_as_empty(tmp_path, clock):
    path = tmp_path / "saved_recipes.json"
    path.write_text("garbage")

    assert SavedRecipeRepository(path, None, clock).list_all() == []
