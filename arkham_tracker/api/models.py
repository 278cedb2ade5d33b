"""
SQLAlchemy models for users, games, per-game investigators and the investigator catalog.
"""

from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)  # uuid
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(64), unique=True, nullable=False, index=True)  # display name, no spaces/special
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    games = relationship("Game", back_populates="owner", cascade="all, delete-orphan")


def _flag_column():
    return Column(Boolean, nullable=False, default=False)


class Game(Base):
    __tablename__ = "games"

    id = Column(String(36), primary_key=True)  # uuid
    name = Column(String(128), nullable=False)
    scenario = Column(String(120), nullable=True)
    notes = Column(Text, nullable=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Phase checklist flags; names must match engine.phases.CHECKLISTS
    mythos_place_doom = _flag_column()
    mythos_draw_p1 = _flag_column()
    mythos_draw_p2 = _flag_column()
    mythos_end = _flag_column()
    enemies_hunter_move = _flag_column()
    enemies_attack = _flag_column()
    upkeep_unexhaust = _flag_column()
    upkeep_draw_p1 = _flag_column()
    upkeep_draw_p2 = _flag_column()
    upkeep_gain_resources = _flag_column()
    upkeep_check_hand = _flag_column()

    owner = relationship("User", back_populates="games")
    investigators = relationship(
        "Investigator",
        back_populates="game",
        cascade="all, delete-orphan",
        order_by="Investigator.created_at",
    )


class Investigator(Base):
    """An investigator attached to one game. Catalog fields are copied so catalog refreshes never alter a running game."""
    __tablename__ = "investigators"
    __table_args__ = (UniqueConstraint("game_id", "code", name="uq_investigator_game_code"),)

    id = Column(String(36), primary_key=True)  # uuid
    game_id = Column(String(36), ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(16), nullable=False)  # catalog code

    name = Column(String(128), nullable=False)
    subname = Column(String(128), nullable=True)
    faction_name = Column(String(32), nullable=True)
    health = Column(Integer, nullable=False, default=0)
    sanity = Column(Integer, nullable=False, default=0)
    skill_willpower = Column(Integer, nullable=False, default=0)
    skill_intellect = Column(Integer, nullable=False, default=0)
    skill_combat = Column(Integer, nullable=False, default=0)
    skill_agility = Column(Integer, nullable=False, default=0)
    real_text = Column(Text, nullable=True)
    imagesrc = Column(String(255), nullable=False, default="")

    current_health = Column(Integer, nullable=False, default=0)
    current_sanity = Column(Integer, nullable=False, default=0)
    resources = Column(Integer, nullable=False, default=0)
    actions_spent = Column(Integer, nullable=False, default=0)  # 0..4
    created_at = Column(DateTime, default=datetime.utcnow)

    game = relationship("Game", back_populates="investigators")


class CatalogInvestigator(Base):
    """Reference row per investigator code, written only by the seeding script."""
    __tablename__ = "catalog_investigators"

    code = Column(String(16), primary_key=True)
    name = Column(String(128), nullable=False)
    subname = Column(String(128), nullable=True)
    faction_name = Column(String(32), nullable=True)
    health = Column(Integer, nullable=False, default=0)
    sanity = Column(Integer, nullable=False, default=0)
    skill_willpower = Column(Integer, nullable=False, default=0)
    skill_intellect = Column(Integer, nullable=False, default=0)
    skill_combat = Column(Integer, nullable=False, default=0)
    skill_agility = Column(Integer, nullable=False, default=0)
    real_text = Column(Text, nullable=True)
    imagesrc = Column(String(255), nullable=False, default="")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
