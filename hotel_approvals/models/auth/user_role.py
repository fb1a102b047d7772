from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from hotel_approvals.db.base import BaseModel

class UserRole(BaseModel):
    __tablename__ = "user_roles"

    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False, index=True)  # supervisor, property_hr, regional_hr, ...
    property_id = Column(Integer, nullable=True)  # NULL = regional scope
    is_active = Column(Boolean, default=True)

    # Relationships
    profile = relationship("Profile", back_populates="user_roles")

    def __repr__(self):
        return f"<UserRole user_id={self.user_id} role={self.role} property_id={self.property_id}>"
