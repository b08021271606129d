"""
Core consensus exports.
"""

from . import difficulty, header, lwma, params

__all__ = [
    "difficulty",
    "header",
    "lwma",
    "params",
]
