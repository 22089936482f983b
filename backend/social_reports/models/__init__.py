from social_reports.models.student import Student
from social_reports.models.course import Course
from social_reports.models.enrollment import Enrollment
from social_reports.models.attendance import AttendanceRecord
from social_reports.models.health_record import HealthRecord
from social_reports.models.social_assistance import SocialAssistanceRecord

__all__ = ["Student", "Course", "Enrollment", "AttendanceRecord", "HealthRecord", "SocialAssistanceRecord"]
