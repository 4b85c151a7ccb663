#!/usr/bin/env python3
"""Renewal threshold policy."""

from __future__ import annotations


DEFAULT_THRESHOLD_FRACTION = 0.75


def should_renew(
    now: float,
    created_at: int,
    expire_at: int,
    threshold_fraction: float = DEFAULT_THRESHOLD_FRACTION,
) -> bool:
    """Return True once `threshold_fraction` of the lifetime has elapsed.

    The boundary is inclusive. A zero-length (or inverted) lifetime is
    always due.
    """

    lifetime = expire_at - created_at
    if lifetime <= 0:
        return True
    return now >= created_at + threshold_fraction * lifetime


def validate_threshold(value: float) -> float:
    """Coerce and range-check a threshold fraction (0..1 inclusive)."""

    fraction = float(value)
    if not 0.0 <= fraction <= 1.0:
        raise ValueError(f"Renewal threshold must be within [0, 1], got {value!r}")
    return fraction


__all__ = ["DEFAULT_THRESHOLD_FRACTION", "should_renew", "validate_threshold"]
