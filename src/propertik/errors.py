"""Errors raised by the property model."""

from __future__ import annotations


class ValidationFailed(ValueError):
    """A value was rejected, or a required property has no value."""
