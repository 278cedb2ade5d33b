"""
Phase checklists for a round.
Every step is a boolean flag stored on the game under "<checklist>_<step>".
"""

from dataclasses import dataclass
from typing import Any

from arkham_tracker.engine import PHASE_ORDER


@dataclass(frozen=True)
class PhaseStep:
    name: str
    label: str


@dataclass(frozen=True)
class PhaseChecklist:
    """Ordered steps of one round phase."""
    name: str
    display_name: str
    steps: tuple[PhaseStep, ...]

    @property
    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]

    def column(self, step: str) -> str:
        return f"{self.name}_{step}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "steps": [{"name": s.name, "label": s.label} for s in self.steps],
        }


CHECKLISTS: dict[str, PhaseChecklist] = {
    "mythos": PhaseChecklist(
        "mythos",
        "Mythos",
        (
            PhaseStep("place_doom", "Place doom"),
            PhaseStep("draw_p1", "Draw Player 1 encounter card"),
            PhaseStep("draw_p2", "Draw Player 2 encounter card"),
            PhaseStep("end", "End of mythos phase"),
        ),
    ),
    "enemies": PhaseChecklist(
        "enemies",
        "Enemy",
        (
            PhaseStep("hunter_move", "Enemies with Hunter move"),
            PhaseStep("attack", "Enemies attack"),
        ),
    ),
    "upkeep": PhaseChecklist(
        "upkeep",
        "Upkeep",
        (
            PhaseStep("unexhaust", "Unexhaust cards"),
            PhaseStep("draw_p1", "Player 1 draws a card"),
            PhaseStep("draw_p2", "Player 2 draws a card"),
            PhaseStep("gain_resources", "Each investigator gains 1 resource"),
            PhaseStep("check_hand", "Check hand size"),
        ),
    ),
}


def get_checklist(name: str) -> PhaseChecklist:
    checklist = CHECKLISTS.get(name)
    if checklist is None:
        raise ValueError(f"Unknown phase checklist: {name}")
    return checklist


def flag_column(checklist_name: str, step: str) -> str:
    """Column name for a step; raises ValueError for unknown checklists or steps."""
    checklist = get_checklist(checklist_name)
    if step not in checklist.step_names:
        raise ValueError(f"Unknown {checklist.name} step: {step}")
    return checklist.column(step)


def all_flag_columns() -> list[str]:
    return [c.column(s.name) for c in CHECKLISTS.values() for s in c.steps]


def read_flags(checklist: PhaseChecklist, game) -> dict[str, bool]:
    """Current step values for one checklist; missing or NULL flags read as False."""
    return {step: bool(getattr(game, checklist.column(step), False)) for step in checklist.step_names}


def toggled(current: bool | None) -> bool:
    return not (current or False)


def cleared_flags(checklist: PhaseChecklist) -> dict[str, bool]:
    """Column -> False for every step of the checklist."""
    return {checklist.column(step): False for step in checklist.step_names}


def first_round_flags() -> dict[str, bool]:
    """Flags for a fresh game in round one: the Mythos phase is skipped, so its steps start checked."""
    checklist = CHECKLISTS["mythos"]
    return {checklist.column(step): True for step in checklist.step_names}


def phase_definitions() -> dict[str, Any]:
    return {
        "order": list(PHASE_ORDER),
        "checklists": [c.to_dict() for c in CHECKLISTS.values()],
    }
