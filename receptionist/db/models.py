"""Database models."""
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Conversation(Base):
    """Log of a finished call or chat."""

    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    call_sid = Column(String, unique=True, index=True, nullable=False)
    channel = Column(String, default="call", nullable=False)  # call, chat
    caller = Column(String, nullable=True)
    destination = Column(String, nullable=True)
    business_name = Column(String, nullable=True)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    ended_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)
    end_reason = Column(String, nullable=True)  # hangup, trial_expired, disconnected, idle, ...
    final_language = Column(String, nullable=True)
    turn_count = Column(Integer, default=0, nullable=False)
    transcript = Column(Text, nullable=True)
