from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..core.runtime import Runtime, get_runtime

router = APIRouter(prefix="/api/v1/recipes")


class ImportRequest(BaseModel):
    url: str = ""
    tabs: Optional[List[str]] = None


@router.get("")
async def list_recipes(runtime: Runtime = Depends(get_runtime)):
    return [item.model_dump(mode="json", by_alias=True) for item in runtime.saved_recipes.list_all()]


@router.get("/{recipe_id}")
async def get_recipe(recipe_id: int, runtime: Runtime = Depends(get_runtime)):
    item = runtime.saved_recipes.get_by_id(recipe_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Recipe {recipe_id} not found")
    return item.model_dump(mode="json", by_alias=True)


@router.delete("/{recipe_id}")
async def delete_recipe(recipe_id: int, runtime: Runtime = Depends(get_runtime)):
    runtime.saved_recipes.delete_by_id(recipe_id)
    return {"deleted": recipe_id}


@router.post("/import")
async def import_recipes(body: ImportRequest, runtime: Runtime = Depends(get_runtime)):
    ids = await runtime.saved_recipes.import_from_sheet(body.url, body.tabs)
    return {"ids": ids}


@router.post("/{recipe_id}/refresh")
async def refresh_recipe(recipe_id: int, runtime: Runtime = Depends(get_runtime)):
    return {"id": await runtime.saved_recipes.refresh_recipe(recipe_id)}
