"""Seed quotes written on first start."""

from __future__ import annotations

DEFAULT_QUOTES: tuple[tuple[str, str], ...] = (
    ("The only limit to our realization of tomorrow is our doubts of today.", "Motivation"),
    ("In the middle of difficulty lies opportunity.", "Inspiration"),
    ("Life is what happens when you're busy making other plans.", "Life"),
)
