"""Relational models consumed by the assistant's domain gateways."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

# SQLAlchemy base
Base = declarative_base()


def _utcnow_naive() -> datetime:
    """Return the current UTC time without tzinfo for storage."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """Assistant user with chat and push destinations."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=True)
    slack_id = Column(String(64), nullable=True, unique=True)
    slack_channel_id = Column(String(64), nullable=True)
    push_subscription = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow_naive)

    alerts = relationship("Alert", back_populates="user")


class Alert(Base):
    """Reminder delivered once its date is reached."""

    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    sent = Column(Boolean, nullable=False, default=False)
    channel_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow_naive)

    user = relationship("User", back_populates="alerts")


class Task(Base):
    """Actionable item with optional tag."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    tag = Column(String(64), nullable=True)
    status = Column(String(32), nullable=False, default="pending")
    channel_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow_naive)


class Note(Base):
    """Free-form note with optional tag."""

    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    tag = Column(String(64), nullable=True)
    channel_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow_naive)


class Image(Base):
    """Generated image reference."""

    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    prompt = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    tag = Column(String(64), nullable=True)
    size = Column(String(32), nullable=True)
    quality = Column(String(32), nullable=True)
    style = Column(String(32), nullable=True)
    channel_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow_naive)
