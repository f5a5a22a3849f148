"""Progress tracking.

The engine only needs the zero-state record to exist after enrollment.
"""

from .ledger import CassandraProgressLedger, ProgressLedger
from .models import CourseProgress


__all__ = ["CassandraProgressLedger", "CourseProgress", "ProgressLedger"]
