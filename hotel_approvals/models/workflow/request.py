from sqlalchemy import Column, Integer, String, ForeignKey, Enum as SQLEnum, JSON, DateTime, Index
from sqlalchemy.orm import relationship
from hotel_approvals.db.base import BaseModel, enum_values
from hotel_approvals.models.shared.enums import RequestStatus

class Request(BaseModel):
    __tablename__ = 'requests'

    request_no = Column(Integer, unique=True, nullable=False)
    entity_type = Column(String(50), nullable=False)  # document, training, sop, leave_request, ...
    entity_id = Column(String(64), nullable=False)
    requester_id = Column(Integer, ForeignKey('profiles.id', ondelete='RESTRICT'), nullable=False, index=True)
    supervisor_id = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    current_assignee_id = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True, index=True)
    status = Column(
        SQLEnum(RequestStatus, name="request_status", values_callable=enum_values),
        nullable=False,
        default=RequestStatus.DRAFT,
        index=True,
    )
    submitted_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    # "metadata" is reserved on declarative classes
    request_metadata = Column("metadata", JSON, default=dict)

    # Relationships
    steps = relationship(
        "RequestStep",
        back_populates="request",
        order_by="RequestStep.step_order",
        cascade="all, delete-orphan",
    )
    comments = relationship(
        "RequestComment",
        back_populates="request",
        order_by="RequestComment.created_at, RequestComment.id",
        cascade="all, delete-orphan",
    )
    attachments = relationship(
        "RequestAttachment",
        back_populates="request",
        order_by="RequestAttachment.id",
        cascade="all, delete-orphan",
    )
    events = relationship(
        "RequestEvent",
        back_populates="request",
        order_by="RequestEvent.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_requests_entity", "entity_type", "entity_id"),
    )

    def __repr__(self):
        return f"<Request id={self.id} no={self.request_no} status={self.status}>"
