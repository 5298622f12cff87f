"""SQLAlchemy models for the Marco bridge."""

from .bridge import BridgeLink

__all__ = ["BridgeLink"]
