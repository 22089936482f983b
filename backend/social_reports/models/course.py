"""
Course model - a course offered by the organization.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Integer, DateTime, String
from sqlalchemy.orm import relationship
from social_reports.database import Base


class Course(Base):
    """SQLAlchemy model for the courses table."""
    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique course identifier")
    name = Column(Text, nullable=False,
                  doc="Course name")
    shift = Column(Text, nullable=True,
                   doc="Shift the course runs in (e.g. Manhã, Tarde, Noite)")
    workload_hours = Column(Integer, nullable=False, default=0,
                            doc="Total workload in hours")
    available_spots = Column(Integer, nullable=False, default=0,
                             doc="Number of spots offered")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    enrollments = relationship("Enrollment", back_populates="course")

    def __repr__(self):
        return f"<Course(id={self.id}, name='{self.name}', shift='{self.shift}')>"
