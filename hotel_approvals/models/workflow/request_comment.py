from sqlalchemy import Column, Integer, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from hotel_approvals.db.base import BaseModel, enum_values
from hotel_approvals.models.shared.enums import CommentVisibility

class RequestComment(BaseModel):
    __tablename__ = 'request_comments'

    request_id = Column(Integer, ForeignKey('requests.id', ondelete='CASCADE'), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey('profiles.id', ondelete='RESTRICT'), nullable=False)
    comment = Column(Text, nullable=False)
    visibility = Column(
        SQLEnum(CommentVisibility, name="comment_visibility", values_callable=enum_values),
        nullable=False,
        default=CommentVisibility.ALL,
    )

    # Relationships
    request = relationship("Request", back_populates="comments")
