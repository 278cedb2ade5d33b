"""
Tracker services: load the owned game, apply engine rules, persist.
Every mutation commits once and returns the events describing the change.
"""

import logging
import uuid
from datetime import datetime
from typing import Any

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from arkham_tracker.config import (
    GAME_NAME_MAX_LENGTH,
    MAX_INVESTIGATORS_PER_GAME,
    SCENARIO_MAX_LENGTH,
)
from arkham_tracker.engine.events import (
    TrackerEvent,
    investigator_added,
    investigator_removed,
    notes_updated,
    phase_reset,
    phase_step_toggled,
    scenario_updated,
    stat_changed,
    tracks_reset,
)
from arkham_tracker.engine.phases import (
    CHECKLISTS,
    all_flag_columns,
    cleared_flags,
    first_round_flags,
    flag_column,
    get_checklist,
    read_flags,
    toggled,
)
from arkham_tracker.engine.stats import (
    apply_stat_delta,
    get_stat_field,
    stat_upper_bound,
    toggle_action_pip,
)

from .models import CatalogInvestigator, Game, Investigator, User

logger = logging.getLogger(__name__)

# Fields copied from the catalog row onto a new per-game investigator
CATALOG_FIELDS = (
    "code",
    "name",
    "subname",
    "faction_name",
    "health",
    "sanity",
    "skill_willpower",
    "skill_intellect",
    "skill_combat",
    "skill_agility",
    "real_text",
    "imagesrc",
)


# ===== Serialization =====

def investigator_to_dict(inv: Investigator) -> dict[str, Any]:
    out = {field: getattr(inv, field) for field in CATALOG_FIELDS}
    out.update({
        "id": inv.id,
        "game_id": inv.game_id,
        "current_health": inv.current_health,
        "current_sanity": inv.current_sanity,
        "resources": inv.resources,
        "actions_spent": inv.actions_spent,
    })
    return out


def get_all_phase_state(game: Game) -> dict[str, dict[str, bool]]:
    return {name: read_flags(checklist, game) for name, checklist in CHECKLISTS.items()}


def get_phase_state(game: Game, checklist_name: str) -> dict[str, bool]:
    """Step -> flag for one checklist; flags never set read as False."""
    try:
        checklist = get_checklist(checklist_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return read_flags(checklist, game)


def game_summary(game: Game) -> dict[str, Any]:
    """Short form for game lists."""
    return {
        "id": game.id,
        "name": game.name,
        "scenario": game.scenario,
        "investigator_count": len(game.investigators),
        "created_at": game.created_at.isoformat() if game.created_at else None,
        "updated_at": game.updated_at.isoformat() if game.updated_at else None,
    }


def game_to_dict(game: Game) -> dict[str, Any]:
    out = game_summary(game)
    out.update({
        "notes": game.notes,
        "phases": get_all_phase_state(game),
        "investigators": [investigator_to_dict(inv) for inv in game.investigators],
    })
    return out


# ===== Lookups =====

def get_owned_game(game_id: str, user: User, db: Session) -> Game:
    """Load a game; 404 if missing, 403 if it belongs to someone else."""
    game = db.query(Game).filter(Game.id == game_id).first()
    if not game:
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    if str(game.user_id) != str(user.id):
        raise HTTPException(status_code=403, detail="Not your game")
    return game


def get_game_investigator(game: Game, investigator_id: str, db: Session) -> Investigator:
    inv = (
        db.query(Investigator)
        .filter(Investigator.id == investigator_id, Investigator.game_id == game.id)
        .first()
    )
    if not inv:
        raise HTTPException(status_code=404, detail=f"Investigator {investigator_id} not found")
    return inv


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


# ===== Games =====

def create_game(
    db: Session,
    user: User,
    name: str,
    scenario: str | None = None,
    first_round: bool = False,
) -> Game:
    """New empty game. first_round pre-checks the mythos steps, which round one skips."""
    name = (name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Game name is required")
    if len(name) > GAME_NAME_MAX_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Game name must be at most {GAME_NAME_MAX_LENGTH} characters",
        )
    game = Game(
        id=str(uuid.uuid4()),
        name=name,
        scenario=_clean_scenario(scenario),
        user_id=user.id,
    )
    if first_round:
        for column, value in first_round_flags().items():
            setattr(game, column, value)
    db.add(game)
    _commit(db)
    db.refresh(game)
    logger.info("Created game %s (%s) for user %s", game.id, game.name, user.id)
    return game


def list_games(db: Session, user: User) -> list[Game]:
    return (
        db.query(Game)
        .filter(Game.user_id == user.id)
        .order_by(Game.created_at.desc())
        .all()
    )


def delete_game(db: Session, game: Game) -> None:
    """Delete a game; its investigators go with it."""
    game_id = game.id
    db.delete(game)
    _commit(db)
    logger.info("Deleted game %s", game_id)


# ===== Investigators =====

def _attached_investigators(db: Session, game_id: str) -> list[Investigator]:
    return db.query(Investigator).filter(Investigator.game_id == game_id).all()


def _count_investigators(db: Session, game_id: str) -> int:
    return db.query(Investigator).filter(Investigator.game_id == game_id).count()


def _touch(game: Game) -> None:
    """Bump updated_at for changes that only write investigator rows."""
    game.updated_at = datetime.utcnow()


def add_investigator(db: Session, game: Game, code: str) -> tuple[Investigator, list[TrackerEvent]]:
    """Attach a catalog investigator with full health/sanity, no resources and no actions spent."""
    code = (code or "").strip()
    if not code:
        raise HTTPException(status_code=400, detail="Investigator code is required")
    game_id = game.id
    # Row lock on backends that support it; serializes adds to the same game
    if db.query(Game).filter(Game.id == game_id).with_for_update().first() is None:
        raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
    attached = _attached_investigators(db, game_id)
    if len(attached) >= MAX_INVESTIGATORS_PER_GAME:
        raise HTTPException(
            status_code=400,
            detail=f"A game can have at most {MAX_INVESTIGATORS_PER_GAME} investigators",
        )
    if any(inv.code == code for inv in attached):
        raise HTTPException(status_code=400, detail=f"Investigator {code} is already in this game")
    card = db.query(CatalogInvestigator).filter(CatalogInvestigator.code == code).first()
    if not card:
        raise HTTPException(status_code=404, detail=f"Investigator {code} not found in catalog")

    inv = Investigator(id=str(uuid.uuid4()), game_id=game_id)
    for field in CATALOG_FIELDS:
        setattr(inv, field, getattr(card, field))
    inv.current_health = card.health
    inv.current_sanity = card.sanity
    inv.resources = 0
    inv.actions_spent = 0
    db.add(inv)
    _touch(game)
    try:
        db.flush()
        # Another add may have committed since the first count
        if _count_investigators(db, game_id) > MAX_INVESTIGATORS_PER_GAME:
            db.rollback()
            raise HTTPException(
                status_code=400,
                detail=f"A game can have at most {MAX_INVESTIGATORS_PER_GAME} investigators",
            )
        db.commit()
    except IntegrityError:
        db.rollback()
        duplicate = (
            db.query(Investigator)
            .filter(Investigator.game_id == game_id, Investigator.code == code)
            .first()
        )
        if duplicate:
            raise HTTPException(status_code=400, detail=f"Investigator {code} is already in this game")
        if db.query(Game).filter(Game.id == game_id).first() is None:
            raise HTTPException(status_code=404, detail=f"Game {game_id} not found")
        raise
    db.refresh(inv)
    logger.info("Added investigator %s (%s) to game %s", inv.code, inv.id, game.id)
    return inv, [investigator_added(inv.id, inv.code, inv.name)]


def delete_investigator(db: Session, game: Game, investigator_id: str) -> list[TrackerEvent]:
    inv = get_game_investigator(game, investigator_id, db)
    code = inv.code
    db.delete(inv)
    _touch(game)
    _commit(db)
    logger.info("Removed investigator %s (%s) from game %s", code, investigator_id, game.id)
    return [investigator_removed(investigator_id, code)]


# ===== Stats and actions =====

def _set_stat(db: Session, game: Game, inv: Investigator, field_name: str, new_value: int) -> list[TrackerEvent]:
    field = get_stat_field(field_name)
    old_value = getattr(inv, field.column)
    if old_value == new_value:
        return []
    setattr(inv, field.column, new_value)
    _touch(game)
    _commit(db)
    return [stat_changed(inv.id, field.name, old_value if old_value is not None else 0, new_value)]


def update_stat(
    db: Session,
    game: Game,
    investigator_id: str,
    field_name: str,
    delta: int,
) -> list[TrackerEvent]:
    """Add delta to one stat, clamped to its bounds. Out-of-range deltas clamp silently."""
    try:
        field = get_stat_field(field_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    inv = get_game_investigator(game, investigator_id, db)
    high = stat_upper_bound(field, inv)
    new_value = apply_stat_delta(getattr(inv, field.column), delta, high)
    return _set_stat(db, game, inv, field.name, new_value)


def toggle_action(db: Session, game: Game, investigator_id: str, index: int) -> list[TrackerEvent]:
    inv = get_game_investigator(game, investigator_id, db)
    try:
        new_spent = toggle_action_pip(inv.actions_spent, index)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _set_stat(db, game, inv, "actions", new_spent)


def reset_investigator_actions(db: Session, game: Game, investigator_id: str) -> list[TrackerEvent]:
    inv = get_game_investigator(game, investigator_id, db)
    return _set_stat(db, game, inv, "actions", 0)


# ===== Phase checklists =====

def toggle_phase_step(db: Session, game: Game, checklist_name: str, step: str) -> list[TrackerEvent]:
    """Flip one checklist flag. Unknown checklists or steps are rejected without writing."""
    try:
        column = flag_column(checklist_name, step)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    value = toggled(getattr(game, column))
    setattr(game, column, value)
    _commit(db)
    return [phase_step_toggled(checklist_name, step, value)]


def reset_phase(db: Session, game: Game, checklist_name: str) -> list[TrackerEvent]:
    try:
        checklist = get_checklist(checklist_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    for column, value in cleared_flags(checklist).items():
        setattr(game, column, value)
    _commit(db)
    return [phase_reset(checklist.name)]


def reset_all_tracks(db: Session, game: Game) -> list[TrackerEvent]:
    """
    Clear every checklist and zero every investigator's actions.
    Applied as one commit so readers never see a half-reset game.
    """
    for column in all_flag_columns():
        setattr(game, column, False)
    investigator_ids = []
    for inv in game.investigators:
        inv.actions_spent = 0
        investigator_ids.append(inv.id)
    _touch(game)
    _commit(db)
    logger.info("Reset all tracks for game %s", game.id)
    return [tracks_reset(list(CHECKLISTS), investigator_ids)]


# ===== Scenario and notes =====

def _clean_scenario(text: str | None) -> str | None:
    text = (text or "").strip()
    if not text:
        return None
    if len(text) > SCENARIO_MAX_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Scenario must be at most {SCENARIO_MAX_LENGTH} characters",
        )
    return text


def update_scenario(db: Session, game: Game, text: str | None) -> list[TrackerEvent]:
    """Replace the scenario; blank text clears it."""
    game.scenario = _clean_scenario(text)
    _commit(db)
    return [scenario_updated(game.scenario)]


def clear_scenario(db: Session, game: Game) -> list[TrackerEvent]:
    return update_scenario(db, game, None)


def update_notes(db: Session, game: Game, text: str | None) -> list[TrackerEvent]:
    game.notes = text if text and text.strip() else None
    _commit(db)
    return [notes_updated(game.notes)]
