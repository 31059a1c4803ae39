"""Core foundational models, errors, settings and logging."""

from .models import StrictBaseModel

__all__ = [
    "StrictBaseModel",
]
