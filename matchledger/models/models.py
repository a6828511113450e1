"""
SQLAlchemy models for the league tables.

Models mirror the hosted backend schema exactly: three independent tables
with no foreign keys between them. ``player_stats`` is a derived aggregate
rebuilt from ``matches``.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """League member keyed by wallet address."""
    __tablename__ = "users"

    wallet_address = Column(String(100), primary_key=True)
    display_name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self):
        return f"<User(wallet_address='{self.wallet_address}', display_name='{self.display_name}')>"


class Match(Base):
    """One recorded match between two wallet addresses."""
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    player1 = Column(String(100), nullable=False)
    player2 = Column(String(100), nullable=False)
    player1_score = Column(Integer, nullable=False, default=0)
    player2_score = Column(Integer, nullable=False, default=0)
    player1_team = Column(String(100), nullable=True)
    player2_team = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    winner = Column(String(100), nullable=True)  # wallet address or 'draw'

    __table_args__ = (
        Index("ix_matches_player1", "player1"),
        Index("ix_matches_player2", "player2"),
        Index("ix_matches_created_at", "created_at"),
    )

    def __repr__(self):
        return (
            f"<Match(id={self.id}, player1='{self.player1}', player2='{self.player2}', "
            f"score={self.player1_score}-{self.player2_score})>"
        )


class PlayerStats(Base):
    """Aggregate record per player."""
    __tablename__ = "player_stats"

    user_id = Column(String(100), primary_key=True)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    draws = Column(Integer, nullable=False, default=0)
    goals_for = Column(Integer, nullable=False, default=0)
    goals_against = Column(Integer, nullable=False, default=0)
    total_games = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<PlayerStats(user_id='{self.user_id}', W{self.wins}/L{self.losses}/D{self.draws})>"
