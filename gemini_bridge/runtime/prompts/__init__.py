from __future__ import annotations

from .template import render_prompt_template

__all__ = ["render_prompt_template"]
