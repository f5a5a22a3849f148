"""Course store.

Read access to courses and their content, plus the entitlement pair
(course enrollment set and student enrolled-courses set).
"""

from .models import Course
from .store import CassandraCourseStore, CourseStore


__all__ = ["CassandraCourseStore", "Course", "CourseStore"]
