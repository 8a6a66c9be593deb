"""
Progression domain ORM models.

Exports:
- UserProgressionModel
- TechniqueOutcomeModel
"""

from .technique_outcome import TechniqueOutcomeModel
from .user_progression import UserProgressionModel

__all__ = [
    "TechniqueOutcomeModel",
    "UserProgressionModel",
]
