"""Exceptions raised by molsim."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """
    Invalid simulation setup detected before any step runs.

    Raised for combinations the core cannot simulate, such as an unbounded
    box axis with a spatial neighbor strategy or an eligibility matrix whose
    shape does not match the particle count.
    """
