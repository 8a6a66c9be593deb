"""
Database Models Package
========================

SQLAlchemy ORM models for the Cadence coaching engine.

All models:
- Are schema-only, no business logic
- Use Mapped[] syntax with mapped_column()
- Inherit from the mixins in ``src.core.database.base``
- Carry a version column when mutable, for compare-and-swap writes

Domain Organization:
--------------------
- progression: user progression record and technique outcome log
- enums: shared type-safe enumerations
"""

from src.core.database.base import Base

from .enums import (
    AssessmentProfile,
    ContentLevel,
    SeverityLevel,
    SpeakingFrequency,
    TechniqueCategory,
    XpAction,
)
from .progression import TechniqueOutcomeModel, UserProgressionModel

__all__ = [
    "Base",
    # Models
    "TechniqueOutcomeModel",
    "UserProgressionModel",
    # Enums
    "AssessmentProfile",
    "ContentLevel",
    "SeverityLevel",
    "SpeakingFrequency",
    "TechniqueCategory",
    "XpAction",
]
