from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from hotel_approvals.db.base import BaseModel

class Profile(BaseModel):
    __tablename__ = 'profiles'

    full_name = Column(String(150), nullable=False)
    email = Column(String(150), unique=True, nullable=False, index=True)
    phone = Column(String(20))
    supervisor_id = Column(Integer, ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True)
    property_id = Column(Integer, nullable=True, index=True)  # Hotel the profile works at
    is_active = Column(Boolean, default=True)

    # Relationships
    supervisor = relationship("Profile", remote_side="Profile.id")
    user_roles = relationship("UserRole", back_populates="profile", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Profile id={self.id} email={self.email}>"
