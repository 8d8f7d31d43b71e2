"""Debit sheet extraction endpoints."""

from .router import router

__all__ = ["router"]
