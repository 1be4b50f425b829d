"""ORM Models — SQLAlchemy declarative models for the enrollment core.

Invariants:
    - All models inherit from Base (db/base.py)
    - User, Course and Batch belong to the catalog; the core only mutates
      Batch.current_students (through services/capacity_manager.py)

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from academy.models.user import User  # noqa: F401
from academy.models.course import Course  # noqa: F401
from academy.models.batch import Batch  # noqa: F401
from academy.models.enrollment import Enrollment  # noqa: F401
from academy.models.verification_record import VerificationRecord  # noqa: F401
