"""
Engine configuration.

Uses ``pydantic_settings.BaseSettings`` so every option can be
set from the environment with the ``KEKSREGAL_`` prefix, e.g.
``KEKSREGAL_PAGE_SIZE=50`` or ``KEKSREGAL_ENABLE_AI=false``.
LLM credentials live in ``keksregal.agents.config``.
"""

from __future__ import annotations

import functools
import pathlib

import pydantic
import pydantic_settings

from keksregal.analysis import listings
from keksregal.models import view
from keksregal.services import state_store


class EngineSettings(pydantic_settings.BaseSettings):
    """Options for scanning, paging and persistence.

    Attributes:
        page_size: Findings per issues page.
        domain_list_limit: Rows shown in a collapsed domain list.
        state_dir: Directory for the JSON state store.
        enable_ai: Run the optional LLM insights after a scan.
    """

    model_config = pydantic_settings.SettingsConfigDict(env_prefix="KEKSREGAL_")

    page_size: int = pydantic.Field(default=view.DEFAULT_PAGE_SIZE, ge=1)
    domain_list_limit: int = pydantic.Field(default=listings.DEFAULT_DOMAIN_LIMIT, ge=1)
    state_dir: pathlib.Path = state_store.DEFAULT_STATE_DIR
    enable_ai: bool = True


@functools.lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Get the process-wide ``EngineSettings``."""
    return EngineSettings()
