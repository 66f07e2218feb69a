"""Character registration, encounter, and turn endpoints."""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

import config
from engine.bestiary import ENEMIES
from engine.session import CombatSession
from engine.store import GameStore
from models.actions import ActionRequest, TurnResult
from models.characters import Combatant
from models.combat_state import CombatState
from models.notifications import Notification

router = APIRouter()


class StartEncounterRequest(BaseModel):
    """Request body for starting an encounter."""
    character_id: str
    enemy_id: str | None = None     # Random level-appropriate enemy if omitted


class EncounterResponse(BaseModel):
    """An encounter's latest turn result and state."""
    encounter_id: str
    result: TurnResult
    state: CombatState


def _get_store(request: Request) -> GameStore:
    """Get the singleton store from app state."""
    return request.app.state.store


def _get_session(request: Request, encounter_id: str) -> CombatSession:
    session = request.app.state.sessions.get(encounter_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Encounter '{encounter_id}' not found")
    return session


def _release_if_over(request: Request, session: CombatSession) -> None:
    """Forget a finished encounter once its final state has been handed out."""
    if session.state is not None and session.state.is_over:
        request.app.state.sessions.pop(session.state.encounter_id, None)


@router.post("/characters", response_model=Combatant)
def register_character(character: Combatant, request: Request) -> Combatant:
    """Add or replace a character in the store."""
    return _get_store(request).put_character(character)


@router.get("/characters/{character_id}", response_model=Combatant)
def get_character(character_id: str, request: Request) -> Combatant:
    character = _get_store(request).get_character(character_id)
    if character is None:
        raise HTTPException(status_code=404, detail=f"Character '{character_id}' not found")
    return character


@router.post("/encounters", response_model=EncounterResponse)
async def start_encounter(body: StartEncounterRequest, request: Request) -> EncounterResponse:
    """Start an encounter and roll initiative.

    Async so that a delayed enemy turn lands on the server's event loop.
    """
    enemy = None
    if body.enemy_id is not None:
        enemy = next((e for e in ENEMIES if e.id == body.enemy_id), None)
        if enemy is None:
            raise HTTPException(status_code=404, detail=f"Enemy '{body.enemy_id}' not found")

    session = CombatSession(
        _get_store(request), enemy_turn_delay=config.ENEMY_TURN_DELAY_SECONDS
    )
    result = session.start(body.character_id, enemy)
    if session.state is None:
        raise HTTPException(status_code=400, detail=result.error)

    request.app.state.sessions[session.state.encounter_id] = session
    _release_if_over(request, session)
    return EncounterResponse(
        encounter_id=session.state.encounter_id,
        result=result,
        state=session.state,
    )


@router.get("/encounters/{encounter_id}", response_model=CombatState)
def get_encounter(encounter_id: str, request: Request) -> CombatState:
    session = _get_session(request, encounter_id)
    _release_if_over(request, session)
    return session.state


@router.post("/encounters/{encounter_id}/actions", response_model=TurnResult)
async def submit_action(encounter_id: str, action: ActionRequest, request: Request) -> TurnResult:
    """Submit the player's action for the current turn."""
    session = _get_session(request, encounter_id)
    if not session.state.is_over and not session.state.is_player_turn:
        raise HTTPException(status_code=409, detail="It's not your turn")

    result = session.act(action)
    _release_if_over(request, session)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result


@router.post("/encounters/{encounter_id}/enemy-turn", response_model=TurnResult)
async def trigger_enemy_turn(encounter_id: str, request: Request) -> TurnResult:
    """Resolve a waiting enemy turn immediately instead of waiting it out."""
    session = _get_session(request, encounter_id)
    result = session.run_enemy_turn()
    _release_if_over(request, session)
    if not result.success:
        raise HTTPException(status_code=409, detail=result.error)
    return result


@router.delete("/encounters/{encounter_id}", response_model=CombatState)
async def abort_encounter(encounter_id: str, request: Request) -> CombatState:
    """Abort an encounter, discarding any pending enemy turn."""
    session = request.app.state.sessions.pop(encounter_id, None)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Encounter '{encounter_id}' not found")
    session.abort()
    return session.state


@router.get("/notifications", response_model=list[Notification])
def pop_notifications(request: Request) -> list[Notification]:
    """Drain pending notifications for toast display."""
    return _get_store(request).pop_notifications()
