"""Multi-tenant employee directory service."""

from __future__ import annotations

__all__: list[str] = [
    "config",
    "deps",
    "logging_setup",
    "main",
]
__version__ = "1.0.0"
