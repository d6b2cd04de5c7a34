"""Input orchestration helpers."""

from .service import ObjectInputService

__all__ = ["ObjectInputService"]
