"""Test data factories for deterministic test data generation."""

from tests.factories.retry import (
    BASE_TIME,
    make_dead_letter_entry,
    make_retry_entry,
)

__all__ = [
    "BASE_TIME",
    "make_dead_letter_entry",
    "make_retry_entry",
]
