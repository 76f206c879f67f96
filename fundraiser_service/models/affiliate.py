from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
from fundraiser_service.models.base import Base


class AffiliateLink(Base):
    """Shareable public donation page owned by one user"""
    __tablename__ = "affiliate_links"
    __table_args__ = (
        CheckConstraint("target_amount > 0", name="ck_affiliate_target_positive"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String, ForeignKey("profiles.user_id"), nullable=False, index=True)
    # Immutable once issued; used in /donate/{link_code}
    link_code = Column(String, nullable=False, unique=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    target_amount = Column(Float, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    profile = relationship("Profile", lazy="joined")
    donations = relationship("Donation", back_populates="affiliate_link", lazy="select")

    def __repr__(self):
        return f"<AffiliateLink(id={self.id}, link_code='{self.link_code}', is_active={self.is_active})>"
