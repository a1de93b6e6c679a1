# app/api/cache.py
from fastapi import APIRouter, HTTPException
from app.core.registry import get_context

router = APIRouter(prefix="/api/cache", tags=["cache"])


@router.get("")
def cache_info():
    ctx = get_context()
    return {name: cache.stats() for name, cache in ctx.caches.items()}


@router.delete("")
def clear_all():
    """Backs the page's 'clear all' action."""
    return {"cleared": get_context().clear_caches()}


@router.delete("/{resource}")
def clear_one(resource: str):
    ctx = get_context()
    cache = ctx.caches.get(resource)
    if cache is None:
        raise HTTPException(status_code=404, detail=f"No cache named {resource!r}.")
    cache.clear()
    return {"cleared": [resource]}
