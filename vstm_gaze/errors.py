"""Exceptions that abort a session before the trial loop starts."""
from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A required collaborator (display surface, item template, plan) is missing."""


class TrialPlanError(ValueError):
    """The trial plan could not be read or contains no usable trial."""
