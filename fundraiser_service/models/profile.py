from sqlalchemy import Column, String, DateTime, func
from fundraiser_service.models.base import Base


class Profile(Base):
    """Read-only mirror of identity-provider profiles used for display"""
    __tablename__ = "profiles"

    user_id = Column(String, primary_key=True, index=True)
    full_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Profile(user_id='{self.user_id}', full_name='{self.full_name}')>"
