"""
Investigator catalog: fetch from ArkhamDB, upsert into the database, list for clients.
"""

import logging
from typing import Any

import requests
from sqlalchemy.orm import Session

from arkham_tracker.config import ARKHAMDB_CARDS_URL, CATALOG_FETCH_TIMEOUT
from arkham_tracker.engine.catalog import CatalogCard, select_investigators

from .models import CatalogInvestigator

logger = logging.getLogger(__name__)


def fetch_catalog_cards(url: str = ARKHAMDB_CARDS_URL, timeout: int = CATALOG_FETCH_TIMEOUT) -> list[CatalogCard]:
    """
    Download the public card dump and keep unique investigators.
    Any fetch or decode failure is logged and returns [] instead of raising.
    """
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
    except requests.RequestException as exc:
        logger.warning("Catalog fetch from %s failed: %s", url, exc)
        return []
    except ValueError as exc:
        logger.warning("Catalog response from %s is not valid JSON: %s", url, exc)
        return []
    if not isinstance(data, list):
        logger.warning("Catalog response from %s is not a list of cards", url)
        return []
    cards = select_investigators(data)
    logger.info("Fetched %d investigators from %d cards", len(cards), len(data))
    return cards


def seed_catalog(db: Session, cards: list[CatalogCard]) -> int:
    """Upsert cards by code in one transaction. Returns the number of rows written."""
    if not cards:
        logger.warning("No catalog cards to seed; leaving catalog unchanged")
        return 0
    written = 0
    seen: set[str] = set()
    try:
        for card in cards:
            if card.code in seen:
                continue
            seen.add(card.code)
            db.merge(CatalogInvestigator(**card.to_dict()))
            written += 1
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Seeded %d catalog investigators", written)
    return written


def catalog_to_dict(row: CatalogInvestigator) -> dict[str, Any]:
    return {
        "code": row.code,
        "name": row.name,
        "subname": row.subname,
        "faction_name": row.faction_name,
        "health": row.health,
        "sanity": row.sanity,
        "skill_willpower": row.skill_willpower,
        "skill_intellect": row.skill_intellect,
        "skill_combat": row.skill_combat,
        "skill_agility": row.skill_agility,
        "real_text": row.real_text,
        "imagesrc": row.imagesrc,
    }


def list_catalog(db: Session, faction: str | None = None) -> list[CatalogInvestigator]:
    query = db.query(CatalogInvestigator)
    if faction:
        query = query.filter(CatalogInvestigator.faction_name == faction)
    return query.order_by(CatalogInvestigator.name, CatalogInvestigator.code).all()
