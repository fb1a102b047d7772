from sqlalchemy import Column, Integer, String, BigInteger, ForeignKey
from sqlalchemy.orm import relationship
from hotel_approvals.db.base import BaseModel

class RequestAttachment(BaseModel):
    __tablename__ = 'request_attachments'

    request_id = Column(Integer, ForeignKey('requests.id', ondelete='CASCADE'), nullable=False, index=True)
    uploaded_by = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    storage_bucket = Column(String(100), nullable=False)
    storage_path = Column(String(500), nullable=False)  # requests/{request_id}/{file name}
    file_name = Column(String(255))
    file_type = Column(String(100))
    file_size = Column(BigInteger)

    # Relationships
    request = relationship("Request", back_populates="attachments")
