"""
shorty_platform package initializer.
"""

from . import manager
from . import scheduler
from . import storage

__all__ = ["manager", "scheduler", "storage"]
