"""
Shared fixtures: an in-memory database wired into the FastAPI app, and a
small factory for inserting records.
"""
import os
import uuid
from datetime import date

# Must be set before social_reports.database is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from social_reports.database import Base, get_db
from social_reports.main import app
from social_reports.models import (
    AttendanceRecord, Course, Enrollment, HealthRecord, SocialAssistanceRecord, Student
)


@pytest.fixture()
def engine():
    """One shared in-memory connection, so the app threads and the test see the same data."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture()
def client(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class Factory:
    """Inserts committed rows with sensible defaults."""

    def __init__(self, session):
        self.session = session

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        return obj

    def student(self, full_name="Maria Silva", cpf=None, age=20, **kwargs):
        return self._save(Student(
            id=str(uuid.uuid4()),
            full_name=full_name,
            cpf=cpf or uuid.uuid4().hex[:11],
            age=age,
            **kwargs
        ))

    def course(self, name="Informática", **kwargs):
        kwargs.setdefault("shift", "Manhã")
        kwargs.setdefault("workload_hours", 40)
        kwargs.setdefault("available_spots", 20)
        return self._save(Course(id=str(uuid.uuid4()), name=name, **kwargs))

    def enrollment(self, student, course, status="active", enrollment_date=None):
        return self._save(Enrollment(
            id=str(uuid.uuid4()),
            student_id=student.id,
            course_id=course.id,
            status=status,
            enrollment_date=enrollment_date or date(2024, 3, 1),
        ))

    def attendance(self, enrollment, status="present", on=None, absence_reason=None):
        return self._save(AttendanceRecord(
            id=str(uuid.uuid4()),
            enrollment_id=enrollment.id,
            date=on or date(2024, 3, 4),
            status=status,
            absence_reason=absence_reason,
        ))

    def health_record(self, student, record_type="dental", professional_name="Dra. Ana",
                      on=None, **kwargs):
        return self._save(HealthRecord(
            id=str(uuid.uuid4()),
            student_id=student.id,
            record_type=record_type,
            professional_name=professional_name,
            date=on or date(2024, 3, 5),
            **kwargs
        ))

    def social_record(self, student, identified_needs=("Moradia",), on=None, **kwargs):
        return self._save(SocialAssistanceRecord(
            id=str(uuid.uuid4()),
            student_id=student.id,
            date=on or date(2024, 3, 6),
            identified_needs=list(identified_needs),
            referrals=kwargs.pop("referrals", []),
            **kwargs
        ))


@pytest.fixture()
def factory(db_session):
    return Factory(db_session)
