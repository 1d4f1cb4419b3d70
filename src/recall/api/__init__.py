"""Recall backend API client."""

from .client import ApiClient

__all__ = ["ApiClient"]
