"""SQLAlchemy declarative base and ORM models.

Table layout follows the hosted backend the app was built against:
badges, tasks, badge_quests, badge_quest_tasks, user_quest_progress, user_badges.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all database models."""


class BadgeModel(Base):
    """ORM model for badge definitions."""

    __tablename__ = "badges"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by: Mapped[str] = mapped_column(String, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class TaskModel(Base):
    """ORM model for tasks (only the columns the badge rules read)."""

    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="todo")
    created_by: Mapped[str] = mapped_column(String, nullable=False)
    assignees: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    badge_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("badges.id", ondelete="SET NULL"), nullable=True, index=True
    )
    completion_verification: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class QuestModel(Base):
    """ORM model for badge quests."""

    __tablename__ = "badge_quests"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String, nullable=False)
    badge_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("badges.id", ondelete="SET NULL"), nullable=True
    )
    required_tasks_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    quest_tasks: Mapped[list["QuestTaskModel"]] = relationship(
        "QuestTaskModel",
        back_populates="quest",
        cascade="all, delete-orphan",
        order_by="QuestTaskModel.order_position",
    )
    progress_records: Mapped[list["QuestProgressModel"]] = relationship(
        "QuestProgressModel",
        cascade="all, delete-orphan",
    )
    badge: Mapped["BadgeModel | None"] = relationship("BadgeModel")


class QuestTaskModel(Base):
    """ORM model linking tasks to a quest with an ordering position."""

    __tablename__ = "badge_quest_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    quest_id: Mapped[str] = mapped_column(
        String, ForeignKey("badge_quests.id", ondelete="CASCADE"), nullable=False
    )
    task_id: Mapped[str] = mapped_column(
        String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    order_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    quest: Mapped["QuestModel"] = relationship("QuestModel", back_populates="quest_tasks")
    task: Mapped["TaskModel"] = relationship("TaskModel")

    __table_args__ = (
        UniqueConstraint("quest_id", "task_id", name="uq_quest_task"),
        Index("idx_quest_task_quest", "quest_id"),
    )


class QuestProgressModel(Base):
    """ORM model for per-user quest progress."""

    __tablename__ = "user_quest_progress"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    quest_id: Mapped[str] = mapped_column(
        String, ForeignKey("badge_quests.id", ondelete="CASCADE"), nullable=False
    )
    completed_tasks: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    progress_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("user_id", "quest_id", name="uq_progress_user_quest"),
        Index("idx_progress_quest", "quest_id"),
    )


class UserBadgeModel(Base):
    """ORM model for earned badges. One row per (user, badge)."""

    __tablename__ = "user_badges"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    badge_id: Mapped[str] = mapped_column(
        String, ForeignKey("badges.id", ondelete="CASCADE"), nullable=False
    )
    task_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True
    )
    quest_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("badge_quests.id", ondelete="SET NULL"), nullable=True
    )
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="uq_user_badge"),
        Index("idx_user_badge_user", "user_id"),
        Index("idx_user_badge_badge", "badge_id"),
    )
