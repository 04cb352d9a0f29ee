"""
Students module - Student records produced by enrollment.
"""

from app.modules.students.models import Gender, Student, StudentAddress, StudentStatus
from app.modules.students.repository import StudentRepository

__all__ = ["Gender", "Student", "StudentAddress", "StudentStatus", "StudentRepository"]
