"""Pull a JSON document out of free-form LLM reply text."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```[a-zA-Z]*\s*\n?(.*?)```", re.DOTALL)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def load_json_from_text(text: str | None) -> Any:
    """Parse the JSON carried by an LLM reply.

    Tried in order: the whole reply, the first fenced code
    block (models add ```` ```json ```` fences even when asked
    for raw JSON), then the outermost ``{...}`` span when the
    object is wrapped in prose.

    Returns:
        The parsed value, or ``None`` when nothing parses.
    """
    content = (text or "").strip()
    if not content:
        return None

    candidates = [content]
    if fence := _FENCE_RE.search(content):
        candidates.append(fence.group(1).strip())
    if obj := _OBJECT_RE.search(content):
        candidates.append(obj.group(0))

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    return None
