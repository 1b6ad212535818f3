"""Raw export text to normalized transaction drafts."""

from .dispatch import adapter_for, parse_batch

__all__ = ["adapter_for", "parse_batch"]
