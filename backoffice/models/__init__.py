# Database models

from backoffice.models.user import User
from backoffice.models.student import Student
from backoffice.models.course import Course
from backoffice.models.enrollment import Enrollment, EnrollmentStatus
from backoffice.models.payment import Payment

__all__ = [
    "User",
    "Student",
    "Course",
    "Enrollment",
    "EnrollmentStatus",
    "Payment",
]
