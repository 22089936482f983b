"""
HealthRecord model - a dental, psychological, nutritional or medical record.

All four record types share one table. Each type fills its own group of
payload columns and leaves the others empty:
- dental: dental_history, hygiene_habits, previous_treatments
- psychological: emotional_history, behavior_assessment, diagnosis,
  referrals, observations
- nutritional: nutritional_assessment, eating_habits, bmi,
  suggested_meal_plan
- medical: clinical_history, allergies, medications, preexisting_conditions
"""

import uuid
from datetime import date, datetime, timezone
from sqlalchemy import Column, Text, Date, DateTime, Float, ForeignKey, Index, String, JSON
from sqlalchemy.orm import relationship
from social_reports.database import Base

HEALTH_RECORD_TYPES = ("dental", "psychological", "nutritional", "medical")

# Payload fields per record type, with the value a fresh record starts with
TYPE_PAYLOAD_DEFAULTS = {
    "dental": {
        "dental_history": "",
        "hygiene_habits": "",
        "previous_treatments": "",
    },
    "psychological": {
        "emotional_history": "",
        "behavior_assessment": "",
        "diagnosis": "",
        "referrals": "",
        "observations": "",
    },
    "nutritional": {
        "nutritional_assessment": "",
        "eating_habits": "",
        "bmi": None,
        "suggested_meal_plan": "",
    },
    "medical": {
        "clinical_history": "",
        "allergies": [],
        "medications": [],
        "preexisting_conditions": [],
    },
}

PAYLOAD_FIELDS = [field for fields in TYPE_PAYLOAD_DEFAULTS.values() for field in fields]


class HealthRecord(Base):
    """SQLAlchemy model for the health_records table."""
    __tablename__ = "health_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique health record identifier")
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False,
                        doc="Reference to the student")
    record_type = Column(Text, nullable=False,
                         doc="dental | psychological | nutritional | medical")
    date = Column(Date, nullable=False, default=date.today,
                  doc="Date of the appointment")
    professional_name = Column(Text, nullable=False,
                               doc="Name of the professional who attended the student")
    notes = Column(Text, nullable=True)

    # dental
    dental_history = Column(Text, nullable=True)
    hygiene_habits = Column(Text, nullable=True)
    previous_treatments = Column(Text, nullable=True)

    # psychological
    emotional_history = Column(Text, nullable=True)
    behavior_assessment = Column(Text, nullable=True)
    diagnosis = Column(Text, nullable=True)
    referrals = Column(Text, nullable=True)
    observations = Column(Text, nullable=True)

    # nutritional
    nutritional_assessment = Column(Text, nullable=True)
    eating_habits = Column(Text, nullable=True)
    bmi = Column(Float, nullable=True, doc="Body mass index (nullable - not always measured)")
    suggested_meal_plan = Column(Text, nullable=True)

    # medical
    clinical_history = Column(Text, nullable=True)
    allergies = Column(JSON, nullable=True)
    medications = Column(JSON, nullable=True)
    preexisting_conditions = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    student = relationship("Student", back_populates="health_records")

    __table_args__ = (
        Index("ix_health_records_student_id", "student_id"),
        Index("ix_health_records_record_type", "record_type"),
        Index("ix_health_records_date", "date"),
    )

    def __repr__(self):
        return f"<HealthRecord(id={self.id}, student={self.student_id}, type='{self.record_type}', date={self.date})>"
