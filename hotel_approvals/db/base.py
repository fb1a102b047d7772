from datetime import datetime, timezone

from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.sql import func
from hotel_approvals.models.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel(Base):
    """Base model with common fields"""
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)


def enum_values(enum_cls):
    """Persist enum values (e.g. 'pending_hr_review') rather than member names"""
    return [member.value for member in enum_cls]
