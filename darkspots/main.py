"""FastAPI application setup for the dark-sky spot finder."""

from fastapi import Depends, FastAPI

from .api import get_spot_finder, router as api_router
from .spot_finder import SpotFinder

app = FastAPI(title="Dark Sky Spots")


@app.get("/healthz")
def healthz(finder: SpotFinder = Depends(get_spot_finder)):
    """Report liveness and the loaded raster's extent."""
    return {"status": "ok", "raster": finder.grid.describe()}


# API routes
app.include_router(api_router, prefix="/v1")
