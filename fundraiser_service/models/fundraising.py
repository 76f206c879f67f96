from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
from fundraiser_service.models.base import Base


class FundraisingProgress(Base):
    """One user's campaign target and cumulative collected amount"""
    __tablename__ = "fundraising_progress"
    __table_args__ = (
        CheckConstraint("target_amount > 0", name="ck_fundraising_target_positive"),
        CheckConstraint("collected_amount >= 0", name="ck_fundraising_collected_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String, ForeignKey("profiles.user_id"), nullable=False, unique=True, index=True)
    target_amount = Column(Float, nullable=False)
    # May exceed target_amount; over-funding is allowed
    collected_amount = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    profile = relationship("Profile", lazy="joined")

    def __repr__(self):
        return (
            f"<FundraisingProgress(user_id='{self.user_id}', "
            f"collected={self.collected_amount}, target={self.target_amount})>"
        )
