"""
sitewire core layer.

Internal utilities and shared primitives used across the framework.
"""

from . import error
from . import log

__all__ = [
    "error",
    "log",
]
