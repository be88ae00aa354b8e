import uuid

from db.database import Base
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func


def new_profile_id() -> str:
    return str(uuid.uuid4())


class UserProfile(Base):
    __tablename__ = "user_profiles"
    __table_args__ = (
        CheckConstraint(
            "days_per_week >= 2 AND days_per_week <= 7",
            name="check_days_per_week_range",
        ),
    )

    # Matches the JWT ``sub`` claim
    id = Column(String(36), primary_key=True, default=new_profile_id)
    experience_level = Column(String(20), nullable=False)  # beginner, intermediate, advanced
    goal = Column(String(20), nullable=False)  # hypertrophy, strength, cut
    days_per_week = Column(Integer, nullable=False, default=4)
    equipment = Column(JSON, nullable=False, default=list)
    injuries = Column(JSON, nullable=False, default=list)
    date_of_birth = Column(Date, nullable=True)
    is_age_verified = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    body_metrics = relationship(
        "BodyMetric", back_populates="user", cascade="all, delete-orphan"
    )
    photo_assets = relationship(
        "PhotoAsset", back_populates="user", cascade="all, delete-orphan"
    )
    ai_results = relationship(
        "AIResult", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<UserProfile(id='{self.id}', goal='{self.goal}')>"


class BodyMetric(Base):
    __tablename__ = "body_metrics"
    __table_args__ = (Index("ix_body_metrics_user_date", "user_id", "date"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        String(36),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date = Column(Date, nullable=False)
    weight = Column(Float, nullable=True)  # lbs

    user = relationship("UserProfile", back_populates="body_metrics")

    def __repr__(self):
        return f"<BodyMetric(user_id='{self.user_id}', date={self.date}, weight={self.weight})>"
