"""
Domain-specific exception hierarchy for the slot planner.
"""


class SlotPlannerError(Exception):
    """Base class for all application-level errors."""


class FormatError(SlotPlannerError, ValueError):
    """Raised when a time string, date or range fails structural parsing."""


class ConfigError(SlotPlannerError, ValueError):
    """Raised when a planner or codec call receives invalid static configuration."""
