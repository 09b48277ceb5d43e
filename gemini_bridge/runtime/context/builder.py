from __future__ import annotations

from datetime import datetime
from typing import Mapping, Protocol, runtime_checkable

from ..assistant.language import system_language_name
from ..assistant.text import truncate_for_prompt
from ..prompts.template import render_prompt_template
from .instructions import ACCOUNT_LINE, SYSTEM_INSTRUCTIONS
from .models import AttachmentDescriptor, SelectedMessageContext


@runtime_checkable
class MessageSource(Protocol):
    """
    Read-only accessor the host supplies for its current selection.

    Called once per prompt; returning None means nothing is selected.
    """

    def get_selected_message(self) -> SelectedMessageContext | None: ...


class ContextBuilder:
    def __init__(
        self,
        *,
        message_source: MessageSource | None = None,
        body_char_limit: int = 8000,
        attachment_char_limit: int = 4000,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.message_source = message_source
        self.body_char_limit = body_char_limit
        self.attachment_char_limit = attachment_char_limit
        self._environ = environ

    def language_name(self) -> str:
        return system_language_name(self._environ)

    def system_instructions(self, *, active_account: str | None = None, now: datetime | None = None) -> str:
        account_line = ACCOUNT_LINE.format(account=active_account) if active_account else ""
        return render_prompt_template(
            SYSTEM_INSTRUCTIONS,
            now=now,
            vars={"LANGUAGE": self.language_name(), "ACCOUNT_LINE": account_line},
        )

    def _attachment_lines(self, attachment: AttachmentDescriptor) -> list[str]:
        lines = [f"- {attachment.filename} ({attachment.mime_type})"]
        if attachment.is_text_like and attachment.text:
            lines.append(truncate_for_prompt(attachment.text, self.attachment_char_limit))
        elif attachment.path:
            # The assistant reads referenced files itself.
            lines.append(f"  File: @{attachment.path}")
        elif attachment.text:
            lines.append(truncate_for_prompt(attachment.text, self.attachment_char_limit))
        else:
            lines.append("  (content not available)")
        return lines

    def context_block(self, message: SelectedMessageContext) -> str:
        lines = [
            "[Selected Email]",
            f"Subject: {message.subject}",
            f"From: {message.sender}",
            f"To: {message.recipients}",
            f"Date: {message.date}",
            "",
            truncate_for_prompt(message.best_body(), self.body_char_limit),
        ]
        if message.attachments:
            lines.append("")
            lines.append("Attachments:")
            for attachment in message.attachments:
                lines.extend(self._attachment_lines(attachment))
        return "\n".join(lines)

    def build(
        self,
        user_message: str,
        *,
        active_account: str | None = None,
        selected: SelectedMessageContext | None = None,
        now: datetime | None = None,
    ) -> str:
        """
        Assemble the chat prompt: instructions, optional selected-email block, user message.

        `selected` overrides the message source for this call.
        """

        message = selected
        if message is None and self.message_source is not None:
            message = self.message_source.get_selected_message()

        parts = ["[System Instructions]", self.system_instructions(active_account=active_account, now=now), ""]
        if message is not None:
            parts.append(self.context_block(message))
            parts.append("")
        parts.append("[User Message]")
        parts.append(user_message)
        return "\n".join(parts)
