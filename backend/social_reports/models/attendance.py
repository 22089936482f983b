"""
AttendanceRecord model - one class-day attendance mark for an enrollment.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from social_reports.database import Base

ATTENDANCE_STATUSES = ("present", "absent")


class AttendanceRecord(Base):
    """SQLAlchemy model for the attendance_records table."""
    __tablename__ = "attendance_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique attendance record identifier")
    enrollment_id = Column(String(36), ForeignKey("enrollments.id"), nullable=False,
                           doc="Reference to the enrollment being marked")
    date = Column(Date, nullable=False,
                  doc="Class date")
    status = Column(Text, nullable=False,
                    doc="Attendance status: present | absent")
    absence_reason = Column(Text, nullable=True,
                            doc="Optional reason given for an absence")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    enrollment = relationship("Enrollment", back_populates="attendance_records")

    __table_args__ = (
        Index("ix_attendance_records_enrollment_id", "enrollment_id"),
        Index("ix_attendance_records_date", "date"),
    )

    def __repr__(self):
        return f"<AttendanceRecord(id={self.id}, enrollment={self.enrollment_id}, date={self.date}, status='{self.status}')>"
