from db.database import Base
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func


class AIResult(Base):
    """Audit record of one AI call: what went in and the validated output."""

    __tablename__ = "ai_results"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        String(36),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(String(20), nullable=False)  # plan, coach, physique
    input_refs = Column(JSON, nullable=False, default=dict)
    output_json = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("UserProfile", back_populates="ai_results")

    def __repr__(self):
        return f"<AIResult(id={self.id}, type='{self.type}', user_id='{self.user_id}')>"
