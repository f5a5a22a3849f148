"""Dependency injection for enrollments module."""

from typing import Annotated

from fastapi import Depends

from .service import EnrollmentService


# Module-level reference to be overridden by main.py
_service_getter = None


def set_enrollment_service_getter(getter):
    """Set the enrollment service getter function.

    Called by main.py during app initialization.
    """
    global _service_getter  # noqa: PLW0603 - Required for DI pattern
    _service_getter = getter


def get_enrollment_service() -> EnrollmentService:
    """Get EnrollmentService instance.

    Uses the getter function set by main.py at startup.
    """
    if _service_getter is None:
        raise RuntimeError(
            "EnrollmentService not configured - call set_enrollment_service_getter first"
        )
    return _service_getter()


EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]
