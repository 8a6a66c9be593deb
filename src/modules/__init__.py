"""
Cadence feature modules.

- ``progression``: streaks, freeze tokens, XP and levels
- ``coaching``: outcome aggregation, adaptive weight, technique planning
- ``assessment``: onboarding questionnaire scoring
- ``shared``: base classes, exceptions, constants and formulas
"""
