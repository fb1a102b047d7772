from sqlalchemy import Column, Integer, ForeignKey, Enum as SQLEnum, JSON
from sqlalchemy.orm import relationship
from hotel_approvals.db.base import BaseModel, enum_values
from hotel_approvals.models.shared.enums import RequestEventType

class RequestEvent(BaseModel):
    __tablename__ = 'request_events'

    request_id = Column(Integer, ForeignKey('requests.id', ondelete='CASCADE'), nullable=False, index=True)
    actor_id = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    event_type = Column(
        SQLEnum(RequestEventType, name="request_event_type", values_callable=enum_values),
        nullable=False,
    )
    payload = Column(JSON, default=dict)

    # Relationships
    request = relationship("Request", back_populates="events")
