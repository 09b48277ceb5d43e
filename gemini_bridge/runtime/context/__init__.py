from __future__ import annotations

from .builder import ContextBuilder, MessageSource
from .models import AttachmentDescriptor, SelectedMessageContext

__all__ = [
    "AttachmentDescriptor",
    "ContextBuilder",
    "MessageSource",
    "SelectedMessageContext",
]
