from __future__ import annotations

import re
from datetime import datetime
from typing import Mapping

_TOKEN_RE = re.compile(r"\{\{\s*([A-Z_]+)(?::([^}]+))?\s*\}\}")


def render_prompt_template(text: str, *, now: datetime | None = None, vars: Mapping[str, str] | None = None) -> str:
    """
    Substitute `{{NAME}}` tokens in prompt text.

    Caller-supplied `vars` win over the built-ins:
    - {{TODAY}} or {{TODAY:<strftime>}}
    - {{NOW}} (ISO timestamp, seconds precision)

    Unknown tokens are left untouched so literal braces in email text survive.
    """

    current = now or datetime.now().astimezone()
    custom: Mapping[str, str] = vars or {}

    def _replace(m: re.Match[str]) -> str:
        name = (m.group(1) or "").strip().upper()
        fmt = m.group(2)

        if name in custom:
            return str(custom.get(name) or "")
        if name == "TODAY":
            d = current.date()
            if isinstance(fmt, str) and fmt.strip():
                try:
                    return d.strftime(fmt.strip())
                except ValueError:
                    return d.isoformat()
            return d.isoformat()
        if name == "NOW":
            return current.isoformat(timespec="seconds")
        return m.group(0)

    return _TOKEN_RE.sub(_replace, text)
