"""
Configuration subsystem for Cadence (2025).

Purpose
-------
Static configuration loaded from environment variables (with ``.env``
support) at process start. Services receive the ``Config`` class through
dependency injection and read values with ``Config.get(key, default)``.

Usage
-----
```python
from src.core.config import Config

retries = Config.get("PROGRESSION_MAX_UPDATE_RETRIES", 3)
if Config.is_production():
    logger.info("Running in production mode")
```
"""

from src.core.config.config import Config, Environment

__all__ = [
    "Config",
    "Environment",
]
