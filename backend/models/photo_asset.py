from db.database import Base
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func


class PhotoAsset(Base):
    __tablename__ = "photo_assets"
    __table_args__ = (Index("ix_photo_assets_user_type", "user_id", "type"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        String(36),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(20), nullable=False)  # progress, physique_input, physique_output
    storage_key = Column(String(512), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("UserProfile", back_populates="photo_assets")

    def __repr__(self):
        return f"<PhotoAsset(type='{self.type}', storage_key='{self.storage_key}')>"
