"""
SocialAssistanceRecord model - a social-assistance intervention for a student.

identified_needs and referrals are free-form label lists stored as JSON.
"""

import uuid
from datetime import date, datetime, timezone
from sqlalchemy import Column, Text, Date, DateTime, ForeignKey, Index, String, JSON
from sqlalchemy.orm import relationship
from social_reports.database import Base

# Labels offered by the intake form; records may carry labels outside this list
NEED_VOCABULARY = [
    "Moradia",
    "Alimentação",
    "Renda",
    "Transporte",
    "Saúde",
    "Educação",
    "Documentação",
    "Jurídico",
]


class SocialAssistanceRecord(Base):
    """SQLAlchemy model for the social_assistance_records table."""
    __tablename__ = "social_assistance_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique record identifier")
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False,
                        doc="Reference to the assisted student")
    date = Column(Date, nullable=False, default=date.today,
                  doc="Date of the intervention")
    identified_needs = Column(JSON, nullable=False, default=list,
                              doc="Non-empty list of need labels")
    referrals = Column(JSON, nullable=False, default=list,
                       doc="List of referral labels")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    student = relationship("Student", back_populates="social_assistance_records")

    __table_args__ = (
        Index("ix_social_assistance_records_student_id", "student_id"),
        Index("ix_social_assistance_records_date", "date"),
    )

    def __repr__(self):
        return f"<SocialAssistanceRecord(id={self.id}, student={self.student_id}, date={self.date})>"
