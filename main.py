"""FastAPI app entry point for Skirmish Engine."""

import logging

from fastapi import FastAPI

from api.combat import router as combat_router
from api.rolls import router as rolls_router
from config import LOG_LEVEL
from engine.store import GameStore

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Skirmish Engine",
    description="Turn-based combat resolution and dice mechanics",
    version="0.1.0",
)

app.state.store = GameStore()
app.state.sessions = {}  # encounter_id -> CombatSession

app.include_router(combat_router, prefix="/combat", tags=["Combat"])
app.include_router(rolls_router, prefix="/rolls", tags=["Rolls"])


@app.get("/")
def root() -> dict:
    """Root endpoint returning server info."""
    return {"name": "Skirmish Engine", "version": "0.1.0", "status": "running"}


@app.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"healthy": True}
