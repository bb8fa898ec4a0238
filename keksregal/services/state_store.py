"""
JSON state store for the last scan.

Persists the last ``AnalysisResult``, the scan context, the
issues view state and the last insights between sessions.
Each entry is a JSON file named after its key inside the
state directory (``.cache/state/`` by default).  Files are
written with camelCase field names so the stored result keeps
the interchange schema.

A file that cannot be parsed is treated as absent and removed.
"""

from __future__ import annotations

import pathlib
from typing import TypeVar

import pydantic

from keksregal.models import analysis, view
from keksregal.utils import logger

log = logger.create_logger("StateStore")

M = TypeVar("M", bound=pydantic.BaseModel)

DEFAULT_STATE_DIR = pathlib.Path.cwd() / ".cache" / "state"

ANALYSIS_KEY = "cookie_analysis"
SCAN_CONTEXT_KEY = "scan_context"
VIEW_STATE_KEY = "view_state"
INSIGHTS_KEY = "ai_analysis"


class StateStore:
    """Key/value persistence of pydantic models as JSON files."""

    def __init__(self, directory: pathlib.Path | str | None = None) -> None:
        self._dir = pathlib.Path(directory) if directory is not None else DEFAULT_STATE_DIR

    @property
    def directory(self) -> pathlib.Path:
        return self._dir

    def _path(self, key: str) -> pathlib.Path:
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)[:100]
        return self._dir / f"{safe}.json"

    # ── Generic API ─────────────────────────────────────────────

    def load(self, key: str, model: type[M]) -> M | None:
        """Load *key* as *model*; ``None`` when absent or malformed."""
        path = self._path(key)
        if not path.exists():
            log.debug("No stored state", {"key": key})
            return None
        try:
            entry = model.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, pydantic.ValidationError, ValueError) as exc:
            log.warn("Failed to read stored state, removing", {"key": key, "error": str(exc)})
            self.delete(key)
            return None
        log.debug("Stored state loaded", {"key": key})
        return entry

    def save(self, key: str, value: pydantic.BaseModel) -> None:
        """Overwrite *key* with *value*."""
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        tmp.replace(path)
        log.debug("State saved", {"key": key, "path": str(path)})

    def delete(self, key: str) -> None:
        """Remove *key* if it exists."""
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            log.warn("Failed to remove stored state", {"key": key, "error": str(exc)})

    # ── Typed helpers ───────────────────────────────────────────

    def load_analysis(self) -> analysis.AnalysisResult | None:
        return self.load(ANALYSIS_KEY, analysis.AnalysisResult)

    def save_analysis(self, result: analysis.AnalysisResult) -> None:
        self.save(ANALYSIS_KEY, result)

    def load_scan_context(self) -> analysis.ScanContext | None:
        return self.load(SCAN_CONTEXT_KEY, analysis.ScanContext)

    def save_scan_context(self, context: analysis.ScanContext) -> None:
        self.save(SCAN_CONTEXT_KEY, context)

    def load_view_state(self) -> view.ViewState | None:
        return self.load(VIEW_STATE_KEY, view.ViewState)

    def save_view_state(self, state: view.ViewState) -> None:
        self.save(VIEW_STATE_KEY, state)

    def load_insights(self) -> analysis.CookieInsights | None:
        return self.load(INSIGHTS_KEY, analysis.CookieInsights)

    def save_insights(self, insights: analysis.CookieInsights | None) -> None:
        """Store the insights, or clear them when ``None``."""
        if insights is None:
            self.delete(INSIGHTS_KEY)
        else:
            self.save(INSIGHTS_KEY, insights)
