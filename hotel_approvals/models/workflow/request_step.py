from sqlalchemy import Column, Integer, String, Text, ForeignKey, Enum as SQLEnum, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from hotel_approvals.db.base import BaseModel, enum_values
from hotel_approvals.models.shared.enums import StepStatus

class RequestStep(BaseModel):
    __tablename__ = 'request_steps'

    request_id = Column(Integer, ForeignKey('requests.id', ondelete='CASCADE'), nullable=False, index=True)
    step_order = Column(Integer, nullable=False)
    assignee_id = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True, index=True)
    assignee_role = Column(String(50))  # supervisor, property_hr, regional_admin, ...
    status = Column(
        SQLEnum(StepStatus, name="request_step_status", values_callable=enum_values),
        nullable=False,
        default=StepStatus.WAITING,
    )
    comment = Column(Text)
    acted_at = Column(DateTime(timezone=True))
    created_by = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)

    # Relationships
    request = relationship("Request", back_populates="steps")

    __table_args__ = (
        UniqueConstraint("request_id", "step_order", name="uq_request_steps_order"),
    )
