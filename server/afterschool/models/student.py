from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from afterschool.core.db import Base

BEHAVIOR_TIERS = ("good-standing", "tier-1", "tier-2", "tier-3", "suspended")
DEFAULT_TIER = BEHAVIOR_TIERS[0]

BehaviorTier = Enum(*BEHAVIOR_TIERS, name="behavior_tier")


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False)
    grade = Column(String(20), nullable=False)
    parent_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    profile_image_url = Column(String(500), nullable=True)
    emergency_contact = Column(String(255), nullable=True)
    medical_notes = Column(Text, nullable=True)
    current_tier = Column(BehaviorTier, nullable=False, default=DEFAULT_TIER)
    tier_update_date = Column(Date, nullable=True)
    version_id = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    parent = relationship("User", back_populates="children")
    incidents = relationship("BehaviorIncident", back_populates="student", order_by="BehaviorIncident.incident_date.desc()")
    notes = relationship("BehaviorNote", back_populates="student")
    tier_transitions = relationship(
        "TierTransition",
        order_by="TierTransition.id.desc()",
        viewonly=True,
    )
    homework = relationship("HomeworkAssignment", back_populates="student")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
