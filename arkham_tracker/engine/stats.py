"""
Investigator stat rules: clamping deltas and the action-pip toggle.
Callers pass current values in and persist whatever comes back.
"""

from dataclasses import dataclass

from arkham_tracker.config import MAX_ACTIONS, MAX_RESOURCES


@dataclass(frozen=True)
class StatField:
    """A mutable investigator stat and the column it is stored in."""
    name: str  # public name used by the API, e.g. "health"
    column: str  # attribute on the Investigator row, e.g. "current_health"
    max_attr: str | None = None  # row attribute holding the upper bound; None = use fixed_max
    fixed_max: int | None = None


STAT_FIELDS: dict[str, StatField] = {
    "health": StatField("health", "current_health", max_attr="health"),
    "sanity": StatField("sanity", "current_sanity", max_attr="sanity"),
    "resources": StatField("resources", "resources", fixed_max=MAX_RESOURCES),
    "actions": StatField("actions", "actions_spent", fixed_max=MAX_ACTIONS),
}


def clamp(value: int, low: int, high: int | None = None) -> int:
    """Constrain value to [low, high]; high=None means no upper bound."""
    if value < low:
        return low
    if high is not None and value > high:
        return high
    return value


def get_stat_field(name: str) -> StatField:
    field = STAT_FIELDS.get(name)
    if field is None:
        raise ValueError(
            f"Unknown stat field: {name}. Expected one of {', '.join(STAT_FIELDS)}"
        )
    return field


def stat_upper_bound(field: StatField, investigator) -> int | None:
    """Upper bound for field on this investigator (anything with health/sanity attributes)."""
    if field.max_attr is not None:
        return int(getattr(investigator, field.max_attr) or 0)
    return field.fixed_max


def apply_stat_delta(current: int | None, delta: int, high: int | None) -> int:
    """
    Add delta to current and clamp into [0, high].
    A missing current value counts as the upper bound (full health/sanity) or 0 when unbounded.
    """
    if current is None:
        current = high if high is not None else 0
    return clamp(current + delta, 0, high)


def toggle_action_pip(spent: int | None, index: int) -> int:
    """
    New actions-spent count after clicking pip `index` (0-based).
    Clicking a used pip rolls back to just before it; clicking an unused pip fills through it.
    Example: spent=2 -> index 0 gives 0, index 1 gives 1, index 3 gives 4.
    """
    if index < 0 or index >= MAX_ACTIONS:
        raise ValueError(f"Action index must be between 0 and {MAX_ACTIONS - 1}")
    spent = clamp(spent or 0, 0, MAX_ACTIONS)
    new_spent = index if index < spent else index + 1
    return clamp(new_spent, 0, MAX_ACTIONS)
