"""SQLAlchemy database models for the local workout store."""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    """Generate a record identifier."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class Split(Base):
    """A training split (program) made of days."""

    __tablename__ = "splits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    days: Mapped[List["Day"]] = relationship(
        "Day", back_populates="split", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        """String representation of Split."""
        return f"<Split(id={self.id}, name='{self.name}', active={self.is_active})>"


class Day(Base):
    """A workout day, either a split template day or a logged date."""

    __tablename__ = "days"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    split_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("splits.id", ondelete="CASCADE"), nullable=True
    )

    # Natural key: (split_id, date, name)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[str] = mapped_column(
        String(32), nullable=False, default=""
    )  # e.g. "17 October 2025", "" for template days
    day_of_split: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Remote record this day was merged from, if any
    remote_record_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    split: Mapped[Optional["Split"]] = relationship("Split", back_populates="days")
    exercises: Mapped[List["Exercise"]] = relationship(
        "Exercise",
        back_populates="day",
        cascade="all, delete-orphan",
        order_by="Exercise.exercise_order",
    )

    __table_args__ = (Index("idx_day_natural_key", "split_id", "date", "name"),)

    def __repr__(self) -> str:
        """String representation of Day."""
        return f"<Day(id={self.id}, name='{self.name}', date='{self.date}')>"


class Exercise(Base):
    """An exercise within a day."""

    __tablename__ = "exercises"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    day_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("days.id", ondelete="CASCADE"), nullable=False
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    exercise_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rep_goal: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    muscle_group: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    day: Mapped["Day"] = relationship("Day", back_populates="exercises")
    sets: Mapped[List["ExerciseSet"]] = relationship(
        "ExerciseSet",
        back_populates="exercise",
        cascade="all, delete-orphan",
        order_by="ExerciseSet.set_order",
    )

    __table_args__ = (Index("idx_exercise_day", "day_id"),)

    def __repr__(self) -> str:
        """String representation of Exercise."""
        return (
            f"<Exercise(id={self.id}, name='{self.name}', "
            f"order={self.exercise_order})>"
        )


class ExerciseSet(Base):
    """A single logged set."""

    __tablename__ = "exercise_sets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    exercise_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("exercises.id", ondelete="CASCADE"), nullable=False
    )
    set_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    reps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failure: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    warm_up: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rest_pause: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    drop_set: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    body_weight: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    time: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    exercise: Mapped["Exercise"] = relationship("Exercise", back_populates="sets")

    def __repr__(self) -> str:
        """String representation of ExerciseSet."""
        return (
            f"<ExerciseSet(id={self.id}, weight={self.weight}, reps={self.reps})>"
        )


class Profile(Base):
    """Local copy of the account profile."""

    __tablename__ = "profiles"

    account_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    username: Mapped[str] = mapped_column(String(200), nullable=False, default="User")
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    weight_kg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    height_cm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        """String representation of Profile."""
        return f"<Profile(account_id='{self.account_id}', username='{self.username}')>"
