import logging

from fastapi import FastAPI

from fuelcore.config import settings
from fuelcore.progression.router import router as progression_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Fuelcore", version="0.1.0")
app.include_router(progression_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "progression": {
            "catalog": "/progression/catalog",
            "reset": "/progression/reset",
            "challenges": "/progression/users/{user_id}/challenges",
            "challenge_start": "/progression/users/{user_id}/challenges/{challenge_id}/start",
            "challenge_complete": "/progression/users/{user_id}/challenges/{challenge_id}/complete",
            "boosts": "/progression/users/{user_id}/boosts",
            "boost_complete": "/progression/users/{user_id}/boosts/{boost_id}/complete",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
