from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from afterschool.core.db import Base

HOMEWORK_STATUSES = ("assigned", "completed", "verified", "overdue")
HOMEWORK_PRIORITIES = ("low", "normal", "high")

HomeworkStatus = Enum(*HOMEWORK_STATUSES, name="homework_status")
HomeworkPriority = Enum(*HOMEWORK_PRIORITIES, name="homework_priority")


class HomeworkAssignment(Base):
    __tablename__ = "homework_assignments"

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    activity_id = Column(Integer, nullable=True)
    assigned_by_staff_id = Column(Integer, ForeignKey("staff_profiles.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    assigned_date = Column(Date, nullable=False)
    status = Column(HomeworkStatus, nullable=False, default="assigned")
    priority = Column(HomeworkPriority, nullable=False, default="normal")
    completed_date = Column(Date, nullable=True)
    completion_notes = Column(Text, nullable=True)
    verified_by_staff_id = Column(Integer, ForeignKey("staff_profiles.id", ondelete="SET NULL"), nullable=True)
    verification_date = Column(Date, nullable=True)
    parent_notified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student", back_populates="homework")
    assigned_by = relationship("StaffProfile", foreign_keys=[assigned_by_staff_id])
    verified_by = relationship("StaffProfile", foreign_keys=[verified_by_staff_id])
