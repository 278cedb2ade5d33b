"""
Tracker events for client refresh and logging.
Each mutation returns the events describing what changed in the game.
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class TrackerEvent:
    """Base event class. All events have a type and payload."""
    type: str
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackerEvent":
        return cls(type=data["type"], payload=data["payload"])


# ===== Event Type Constants =====

# Investigator events
INVESTIGATOR_ADDED = "investigator_added"
INVESTIGATOR_REMOVED = "investigator_removed"
STAT_CHANGED = "stat_changed"

# Phase events
PHASE_STEP_TOGGLED = "phase_step_toggled"
PHASE_RESET = "phase_reset"
TRACKS_RESET = "tracks_reset"

# Game text events
SCENARIO_UPDATED = "scenario_updated"
NOTES_UPDATED = "notes_updated"


# ===== Event Factory Functions =====

def investigator_added(investigator_id: str, code: str, name: str) -> TrackerEvent:
    return TrackerEvent(INVESTIGATOR_ADDED, {
        "investigator_id": investigator_id,
        "code": code,
        "name": name,
    })


def investigator_removed(investigator_id: str, code: str) -> TrackerEvent:
    return TrackerEvent(INVESTIGATOR_REMOVED, {
        "investigator_id": investigator_id,
        "code": code,
    })


def stat_changed(investigator_id: str, field: str, old_value: int, new_value: int) -> TrackerEvent:
    return TrackerEvent(STAT_CHANGED, {
        "investigator_id": investigator_id,
        "field": field,
        "old_value": old_value,
        "new_value": new_value,
        "change": new_value - old_value,
    })


def phase_step_toggled(checklist: str, step: str, value: bool) -> TrackerEvent:
    return TrackerEvent(PHASE_STEP_TOGGLED, {
        "checklist": checklist,
        "step": step,
        "value": value,
    })


def phase_reset(checklist: str) -> TrackerEvent:
    return TrackerEvent(PHASE_RESET, {"checklist": checklist})


def tracks_reset(checklists: list[str], investigator_ids: list[str]) -> TrackerEvent:
    """Emitted once for reset-all: every checklist cleared and these investigators' actions zeroed."""
    return TrackerEvent(TRACKS_RESET, {
        "checklists": checklists,
        "investigator_ids": investigator_ids,
    })


def scenario_updated(scenario: str | None) -> TrackerEvent:
    return TrackerEvent(SCENARIO_UPDATED, {"scenario": scenario})


def notes_updated(notes: str | None) -> TrackerEvent:
    return TrackerEvent(NOTES_UPDATED, {"notes": notes})
