"""
Enrollment model - links one student to one course.

Tracks the enrollment lifecycle through statuses:
- active: Student is attending the course
- locked: Enrollment is on hold (trancada)
- completed: Student finished the course
"""

import uuid
from datetime import date, datetime, timezone
from sqlalchemy import Column, Text, Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from social_reports.database import Base

ENROLLMENT_STATUSES = ("active", "locked", "completed")


class Enrollment(Base):
    """
    SQLAlchemy model for the enrollments table.

    Uniqueness of (student, course) is not enforced at this layer.
    """
    __tablename__ = "enrollments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique enrollment identifier")
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False,
                        doc="Reference to the enrolled student")
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False,
                       doc="Reference to the course")
    status = Column(Text, nullable=False, default="active",
                    doc="Lifecycle status: active | locked | completed")
    enrollment_date = Column(Date, nullable=False, default=date.today,
                             doc="Date the student was enrolled")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    student = relationship("Student", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")
    attendance_records = relationship("AttendanceRecord", back_populates="enrollment")

    __table_args__ = (
        Index("ix_enrollments_student_id", "student_id"),
        Index("ix_enrollments_course_id", "course_id"),
        Index("ix_enrollments_status", "status"),
    )

    def __repr__(self):
        return f"<Enrollment(id={self.id}, student={self.student_id}, course={self.course_id}, status='{self.status}')>"
