"""
Cadence test suite.

- tests/unit/         : engines, aggregate and services on in-memory
                        repositories (no external services)
- tests/unit/domain/  : aggregate and value object invariants
- tests/integration/  : SQL repositories against PostgreSQL (testcontainers)

Select with markers, e.g. ``pytest -m "unit and not database"``.
"""
