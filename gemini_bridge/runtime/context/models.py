from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

# MIME types whose extracted text is inlined into the prompt.
_TEXT_LIKE_MIME_TYPES = frozenset(
    {
        "application/json",
        "application/xml",
        "application/x-yaml",
        "application/yaml",
        "application/csv",
        "application/x-sh",
        "message/rfc822",
    }
)


class AttachmentDescriptor(BaseModel):
    filename: str
    mime_type: str = "application/octet-stream"
    # Extracted text, when the host could decode it.
    text: str | None = None
    # Local file the assistant may read instead of an inlined copy.
    path: str | None = None

    @field_validator("mime_type")
    @classmethod
    def _normalize_mime(cls, v: str) -> str:
        cleaned = (v or "").split(";", 1)[0].strip().lower()
        return cleaned or "application/octet-stream"

    @property
    def is_text_like(self) -> bool:
        return self.mime_type.startswith("text/") or self.mime_type in _TEXT_LIKE_MIME_TYPES


class SelectedMessageContext(BaseModel):
    """
    Snapshot of the message selected in the host, taken for one prompt.

    `body` is the fully fetched searchable body; `preview` is the short snippet the
    host shows in its list and is only used when no body is available.
    """

    subject: str = ""
    sender: str = ""
    recipients: str = ""
    date: str = ""
    body: str | None = None
    preview: str | None = None
    attachments: list[AttachmentDescriptor] = Field(default_factory=list)

    def best_body(self) -> str:
        if self.body is not None and self.body.strip():
            return self.body
        return self.preview or ""
