"""
FastAPI backend for Arkham Tracker.
Provides REST API endpoints for games, investigators, stats and phase checklists.
"""

import logging
import uuid
from typing import Any, Literal

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from arkham_tracker.config import CORS_ORIGINS, LOG_LEVEL, MAX_STAT_DELTA
from arkham_tracker.engine.events import TrackerEvent
from arkham_tracker.engine.phases import phase_definitions

from . import tracker
from .auth import (
    AuthSession,
    create_access_token,
    get_current_user,
    get_optional_session,
    hash_password,
    validate_username,
    verify_password,
)
from .catalog import catalog_to_dict, list_catalog
from .database import get_db, init_db
from .models import Game, User

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Arkham Tracker API",
    description="Backend API for tracking Arkham Horror: The Card Game rounds",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request, call_next):
    """Log method and path so 500s can be traced to the failing endpoint."""
    method = request.method
    path = request.url.path
    try:
        response = await call_next(request)
        if response.status_code >= 500:
            logger.error("[%s] %s %s", response.status_code, method, path)
        return response
    except Exception:
        logger.exception("[500] %s %s (exception)", method, path)
        raise


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    """Return 500 with CORS headers so the frontend can read the error."""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    origin = request.headers.get("origin")
    headers = {}
    if origin in CORS_ORIGINS:
        headers = {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
        }
    return JSONResponse(status_code=500, content={"detail": str(exc)}, headers=headers)


# ===== Pydantic Models =====

class RegisterRequest(BaseModel):
    email: str
    username: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class CreateGameRequest(BaseModel):
    name: str
    scenario: str | None = None
    first_round: bool = False


class ScenarioRequest(BaseModel):
    scenario: str | None = None


class NotesRequest(BaseModel):
    notes: str | None = None


class AddInvestigatorRequest(BaseModel):
    code: str


class UpdateStatRequest(BaseModel):
    field: Literal["health", "sanity", "resources", "actions"]
    delta: int = Field(ge=-MAX_STAT_DELTA, le=MAX_STAT_DELTA)


class ToggleActionRequest(BaseModel):
    index: int


class TogglePhaseRequest(BaseModel):
    step: str


# ===== Helper Functions =====

def user_to_dict(user: User) -> dict[str, Any]:
    return {"id": user.id, "email": user.email, "username": user.username}


def mutation_response(game: Game, events: list[TrackerEvent], db: Session) -> dict[str, Any]:
    """Refreshed game plus the events so the client can re-render."""
    db.refresh(game)
    return {
        "game": tracker.game_to_dict(game),
        "events": [e.to_dict() for e in events],
    }


@app.on_event("startup")
def on_startup():
    init_db()


# ===== API Endpoints =====

@app.get("/")
def root():
    return {"message": "Arkham Tracker API", "version": "1.0.0"}


# ----- Auth -----

@app.post("/auth/register")
def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """Register with email, username (unique, no spaces/special), and password."""
    if not validate_username(request.username):
        raise HTTPException(
            status_code=400,
            detail="Username must be 2–32 characters, letters numbers and underscore only",
        )
    if not request.password:
        raise HTTPException(status_code=400, detail="Password is required")
    if db.query(User).filter(User.email == request.email).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    if db.query(User).filter(User.username == request.username).first():
        raise HTTPException(status_code=400, detail="Username already taken")
    try:
        user = User(
            id=str(uuid.uuid4()),
            email=request.email,
            username=request.username,
            password_hash=hash_password(request.password),
        )
        db.add(user)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Registration failed: {str(e)}")
    return {"access_token": create_access_token(user), "user": user_to_dict(user)}


@app.post("/auth/login")
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Login with email and password."""
    user = db.query(User).filter(User.email == request.email).first()
    if not user or not verify_password(request.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return {"access_token": create_access_token(user), "user": user_to_dict(user)}


@app.get("/auth/me")
def auth_me(user: User = Depends(get_current_user)):
    """Return current user (email, username; password not included)."""
    return user_to_dict(user)


@app.get("/auth/session")
def auth_session(session: AuthSession | None = Depends(get_optional_session)):
    """Signed-in user id and username from the token alone; session is null when signed out."""
    return {"session": session.to_dict() if session else None}


# ----- Reference data -----

@app.get("/catalog/investigators")
def get_catalog(faction: str | None = None, db: Session = Depends(get_db)):
    """List catalog investigators, optionally for one faction (e.g. 'Guardian')."""
    return {"investigators": [catalog_to_dict(row) for row in list_catalog(db, faction)]}


@app.get("/phases")
def get_phases():
    """Round phase order and checklist steps with display labels."""
    return phase_definitions()


# ----- Games -----

@app.post("/games")
def create_game(
    request: CreateGameRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    game = tracker.create_game(db, user, request.name, request.scenario, request.first_round)
    return {"game": tracker.game_to_dict(game)}


@app.get("/games")
def list_my_games(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the current user's games, newest first."""
    return {"games": [tracker.game_summary(g) for g in tracker.list_games(db, user)]}


@app.get("/games/{game_id}")
def get_game(
    game_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    game = tracker.get_owned_game(game_id, user, db)
    return {"game": tracker.game_to_dict(game)}


@app.delete("/games/{game_id}")
def delete_game(
    game_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a game and its investigators."""
    game = tracker.get_owned_game(game_id, user, db)
    tracker.delete_game(db, game)
    return {"message": f"Game {game_id} deleted"}


@app.put("/games/{game_id}/scenario")
def update_scenario(
    game_id: str,
    request: ScenarioRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    game = tracker.get_owned_game(game_id, user, db)
    events = tracker.update_scenario(db, game, request.scenario)
    return mutation_response(game, events, db)


@app.delete("/games/{game_id}/scenario")
def clear_scenario(
    game_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    game = tracker.get_owned_game(game_id, user, db)
    events = tracker.clear_scenario(db, game)
    return mutation_response(game, events, db)


@app.put("/games/{game_id}/notes")
def update_notes(
    game_id: str,
    request: NotesRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    game = tracker.get_owned_game(game_id, user, db)
    events = tracker.update_notes(db, game, request.notes)
    return mutation_response(game, events, db)


# ----- Investigators -----

@app.post("/games/{game_id}/investigators")
def add_investigator(
    game_id: str,
    request: AddInvestigatorRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Attach a catalog investigator (at most two per game, no duplicates)."""
    game = tracker.get_owned_game(game_id, user, db)
    inv, events = tracker.add_investigator(db, game, request.code)
    out = mutation_response(game, events, db)
    out["investigator"] = tracker.investigator_to_dict(inv)
    return out


@app.delete("/games/{game_id}/investigators/{investigator_id}")
def delete_investigator(
    game_id: str,
    investigator_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    game = tracker.get_owned_game(game_id, user, db)
    events = tracker.delete_investigator(db, game, investigator_id)
    return mutation_response(game, events, db)


@app.post("/games/{game_id}/investigators/{investigator_id}/stats")
def update_stat(
    game_id: str,
    investigator_id: str,
    request: UpdateStatRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Apply a signed delta to health, sanity, resources or actions; results are clamped."""
    game = tracker.get_owned_game(game_id, user, db)
    events = tracker.update_stat(db, game, investigator_id, request.field, request.delta)
    return mutation_response(game, events, db)


@app.post("/games/{game_id}/investigators/{investigator_id}/actions/toggle")
def toggle_action(
    game_id: str,
    investigator_id: str,
    request: ToggleActionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Click action pip `index` (0-3)."""
    game = tracker.get_owned_game(game_id, user, db)
    events = tracker.toggle_action(db, game, investigator_id, request.index)
    return mutation_response(game, events, db)


@app.post("/games/{game_id}/investigators/{investigator_id}/actions/reset")
def reset_investigator_actions(
    game_id: str,
    investigator_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    game = tracker.get_owned_game(game_id, user, db)
    events = tracker.reset_investigator_actions(db, game, investigator_id)
    return mutation_response(game, events, db)


# ----- Phase checklists -----

@app.get("/games/{game_id}/phases")
def get_all_phase_state(
    game_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    game = tracker.get_owned_game(game_id, user, db)
    return {"phases": tracker.get_all_phase_state(game)}


@app.get("/games/{game_id}/phases/{checklist}")
def get_phase_state(
    game_id: str,
    checklist: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    game = tracker.get_owned_game(game_id, user, db)
    return {"checklist": checklist, "steps": tracker.get_phase_state(game, checklist)}


@app.post("/games/{game_id}/phases/{checklist}/toggle")
def toggle_phase_step(
    game_id: str,
    checklist: str,
    request: TogglePhaseRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Flip one mythos / enemies / upkeep step."""
    game = tracker.get_owned_game(game_id, user, db)
    events = tracker.toggle_phase_step(db, game, checklist, request.step)
    return mutation_response(game, events, db)


@app.post("/games/{game_id}/phases/{checklist}/reset")
def reset_phase(
    game_id: str,
    checklist: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    game = tracker.get_owned_game(game_id, user, db)
    events = tracker.reset_phase(db, game, checklist)
    return mutation_response(game, events, db)


@app.post("/games/{game_id}/reset-all")
def reset_all_tracks(
    game_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Clear every checklist and every investigator's spent actions in one go."""
    game = tracker.get_owned_game(game_id, user, db)
    events = tracker.reset_all_tracks(db, game)
    return mutation_response(game, events, db)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
