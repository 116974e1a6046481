"""Coachlix fitness coaching chat service."""

__version__ = "0.1.0"
