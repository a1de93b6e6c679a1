import logging
import os
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi import FastAPI, Request
import uvicorn
from contextlib import asynccontextmanager
from app.api import cache, distances, geocode, locate, overlays, routing
from app.core.config import CACHE_TTL_SEC, DEFAULT_VIEW, ROUTING_PROFILES, STATIC_DIR, TILE_LAYER
from app.core.registry import set_context
from app.core.loader import build_context
from app.core.templates import templates

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Skip provider setup during tests; fixtures install their own context
    if os.environ.get("TESTING"):
        print("⚠️ Skipping lifespan (test mode)")
        yield
        return

    print("🚀 App starting up — building caches and provider clients...")
    context = build_context()
    set_context(context)
    app.state.context = context

    yield

    await context.aclose()
    set_context(None)
    print("🧹 App shutting down — cleanup complete.")


app = FastAPI(lifespan=lifespan, title="Location Finder Map API")


app.include_router(geocode.router)
app.include_router(overlays.router)
app.include_router(routing.router)
app.include_router(distances.router)
app.include_router(cache.router)
app.include_router(locate.router)

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


@app.get("/", response_class=HTMLResponse)
async def home(request: Request):
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "default_view": DEFAULT_VIEW,
            "tile_layer": TILE_LAYER,
            "profiles": list(ROUTING_PROFILES),
            "cache_ttl": CACHE_TTL_SEC,
        },
    )


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=10000)
