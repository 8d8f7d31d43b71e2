"""Uploaded source documents and their validation."""

from .models import DocumentKind, SourceDocument

__all__ = ["DocumentKind", "SourceDocument"]
