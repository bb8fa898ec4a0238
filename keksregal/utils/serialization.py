"""Shared serialization helpers for camelCase conversion.

Provides a single ``snake_to_camel`` implementation used as
the alias generator of every model that crosses the state
store or HTTP boundary, so persisted results keep the
``totalCookies`` / ``httpOnly`` field names.
"""

from __future__ import annotations

import pydantic


def snake_to_camel(name: str) -> str:
    """Convert a snake_case string to camelCase.

    Args:
        name: A snake_case identifier such as
            ``"http_only"``.

    Returns:
        The camelCase equivalent, e.g. ``"httpOnly"``.
    """
    parts = name.split("_")
    return parts[0] + "".join(w.capitalize() for w in parts[1:])


CAMEL_CONFIG = pydantic.ConfigDict(alias_generator=snake_to_camel, populate_by_name=True)
