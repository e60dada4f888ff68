from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from afterschool.core.db import Base
from afterschool.models.student import BehaviorTier

INCIDENT_TYPES = ("disruption", "disrespect", "physical", "property-damage", "bullying", "other")

IncidentType = Enum(*INCIDENT_TYPES, name="incident_type")


class BehaviorIncident(Base):
    __tablename__ = "behavior_incidents"

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    reported_by_staff_id = Column(Integer, ForeignKey("staff_profiles.id", ondelete="SET NULL"), nullable=True)
    incident_date = Column(Date, nullable=False, index=True)
    incident_time = Column(String(5), nullable=False)
    incident_type = Column(IncidentType, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(150), nullable=False)
    witness_names = Column(JSON, nullable=True)
    action_taken = Column(Text, nullable=True)
    parent_notified = Column(Boolean, nullable=False, default=False)
    parent_notification_date = Column(Date, nullable=True)
    follow_up_required = Column(Boolean, nullable=False, default=False)
    is_resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    student = relationship("Student", back_populates="incidents")
    reported_by = relationship("StaffProfile")


class BehaviorNote(Base):
    __tablename__ = "behavior_notes"

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    staff_id = Column(Integer, ForeignKey("staff_profiles.id", ondelete="SET NULL"), nullable=True)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)
    note = Column(Text, nullable=False)
    is_positive = Column(Boolean, nullable=False, default=True)
    is_private = Column(Boolean, nullable=False, default=False)
    parent_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    student = relationship("Student", back_populates="notes")
    staff = relationship("StaffProfile")


class TierTransition(Base):
    """Append-only history row; the only writer of ``Student.current_tier``."""

    __tablename__ = "tier_transitions"

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    from_tier = Column(BehaviorTier, nullable=False)
    to_tier = Column(BehaviorTier, nullable=False)
    date = Column(Date, nullable=False)
    reason = Column(Text, nullable=False)
    authorized_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    parent_notified = Column(Boolean, nullable=False, default=False)
    parent_notification_date = Column(Date, nullable=True)
    incident_ids = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    student = relationship("Student")
    authorized_by = relationship("User")
