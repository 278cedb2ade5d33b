"""
Investigator catalog records.
Parses raw ArkhamDB card dicts into CatalogCard, filtered to investigators and unique by code.
"""

from dataclasses import asdict, dataclass
from typing import Any, Iterable

INVESTIGATOR_TYPE_CODE = "investigator"


def _ensure_int(value: Any) -> int:
    """Card stats can be missing or null in the dump; treat those as 0."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _ensure_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass
class CatalogCard:
    """Immutable reference data for one playable investigator."""
    code: str
    name: str
    subname: str | None
    faction_name: str | None
    health: int
    sanity: int
    skill_willpower: int
    skill_intellect: int
    skill_combat: int
    skill_agility: int
    real_text: str | None
    imagesrc: str  # relative image path on arkhamdb.com; "" when the card has none

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CatalogCard":
        code = data.get("code")
        if not code:
            raise ValueError("Card record has no code")
        return cls(
            code=str(code),
            name=str(data.get("name") or code),
            subname=_ensure_optional_str(data.get("subname")),
            faction_name=_ensure_optional_str(data.get("faction_name")),
            health=_ensure_int(data.get("health")),
            sanity=_ensure_int(data.get("sanity")),
            skill_willpower=_ensure_int(data.get("skill_willpower")),
            skill_intellect=_ensure_int(data.get("skill_intellect")),
            skill_combat=_ensure_int(data.get("skill_combat")),
            skill_agility=_ensure_int(data.get("skill_agility")),
            real_text=_ensure_optional_str(data.get("real_text")),
            imagesrc=str(data.get("imagesrc") or ""),
        )


def select_investigators(records: Iterable[Any]) -> list[CatalogCard]:
    """
    Keep only investigator cards, first occurrence per code.
    Non-dict entries and records without a code are skipped.
    """
    seen: set[str] = set()
    out: list[CatalogCard] = []
    for record in records:
        if not isinstance(record, dict):
            continue
        if record.get("type_code") != INVESTIGATOR_TYPE_CODE:
            continue
        try:
            card = CatalogCard.from_dict(record)
        except ValueError:
            continue
        if card.code in seen:
            continue
        seen.add(card.code)
        out.append(card)
    return out
