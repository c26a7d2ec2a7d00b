"""Utility helpers."""

from orderflow.utils.duration import parse_duration

__all__ = ["parse_duration"]
