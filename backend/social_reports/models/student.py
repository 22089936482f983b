"""
Student model - represents a person assisted by the organization.

Students are referenced by enrollments, health records and social
assistance records through the student_id foreign key.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String, Integer, Boolean
from sqlalchemy.orm import relationship
from social_reports.database import Base


class Student(Base):
    """
    SQLAlchemy model for the students table.

    Stores identity and contact information. The CPF (national ID) is
    unique per student; ``has_nis`` flags students registered with a
    social identification number (NIS).
    """
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique student identifier")
    full_name = Column(Text, nullable=False,
                       doc="Student's full name")
    cpf = Column(String(14), nullable=False, unique=True,
                 doc="National ID (CPF)")
    age = Column(Integer, nullable=True,
                 doc="Age in years (nullable - not always informed)")
    phone = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    has_nis = Column(Boolean, nullable=False, default=False,
                     doc="Whether the student has a NIS (socio-economic ID)")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        doc="Timestamp when student record was created")

    enrollments = relationship("Enrollment", back_populates="student")
    health_records = relationship("HealthRecord", back_populates="student")
    social_assistance_records = relationship("SocialAssistanceRecord", back_populates="student")

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.full_name}', cpf='{self.cpf}')>"
