"""
Server entry point — FastAPI app setup and route configuration.
Exposes the cookie analysis session to a rendering layer: load
cookies, scan, browse issues and listings, and remove cookies
through confirmed plans.
"""

from __future__ import annotations

import functools
import os
from datetime import date
from typing import Any, Literal

import dotenv
import pydantic
import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from keksregal import config
from keksregal.agents.config import validate_llm_config
from keksregal.models import analysis, removal, view
from keksregal.services import cookie_session, record_store
from keksregal.utils import errors
from keksregal.utils.logger import create_logger
from keksregal.utils.serialization import CAMEL_CONFIG

dotenv.load_dotenv()

log = create_logger("Server")
app = FastAPI(title="Keksregal Cookie Analysis Server")

HOST = os.environ.get("UVICORN_HOST", "127.0.0.1")
PORT = int(os.environ.get("UVICORN_PORT", "3002"))
IS_PRODUCTION = os.environ.get("ENVIRONMENT", "development") == "production"

# ============================================================================
# Middleware
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# Session
# ============================================================================


@functools.lru_cache(maxsize=1)
def get_store() -> record_store.InMemoryRecordStore:
    """Get the process-wide in-memory record store."""
    return record_store.InMemoryRecordStore()


@functools.lru_cache(maxsize=1)
def get_session() -> cookie_session.CookieAnalysisSession:
    """Get the process-wide analysis session."""
    return cookie_session.CookieAnalysisSession(get_store(), settings=config.get_settings())


def _dump(model: pydantic.BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


# ============================================================================
# Request Models
# ============================================================================


class ScanRequest(pydantic.BaseModel):
    model_config = CAMEL_CONFIG

    scope: analysis.ScanScope = "all"
    domain: str | None = None


class RemovalRequest(pydantic.BaseModel):
    """One destructive action; nothing is removed unless ``confirm`` is set."""

    model_config = CAMEL_CONFIG

    kind: Literal["keys", "domain", "domains", "name_on_domain", "insecure", "expiring", "problematic"]
    keys: list[str] = pydantic.Field(default_factory=list)
    domain: str | None = None
    domains: list[str] = pydantic.Field(default_factory=list)
    name: str | None = None
    before: date | None = None
    after: date | None = None
    confirm: bool = False


def _build_plan(session: cookie_session.CookieAnalysisSession, body: RemovalRequest) -> removal.RemovalPlan:
    match body.kind:
        case "keys":
            return session.plan_selected(body.keys)
        case "domain":
            if not body.domain:
                raise ValueError("domain is required")
            return session.plan_domain(body.domain)
        case "domains":
            return session.plan_domains(body.domains)
        case "name_on_domain":
            if not body.name or not body.domain:
                raise ValueError("name and domain are required")
            return session.plan_name_on_domain(body.name, body.domain)
        case "insecure":
            return session.plan_insecure()
        case "expiring":
            return session.plan_expiring(before=body.before, after=body.after)
        case "problematic":
            return session.plan_problematic()


# ============================================================================
# Error Handling
# ============================================================================

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (errors.InvalidRecordError, 422),
    (errors.ConfirmationRequiredError, 409),
    (errors.ScanError, 502),
    (errors.CookieStoreError, 502),
    (ValueError, 400),
)


@app.exception_handler(errors.KeksregalError)
@app.exception_handler(ValueError)
async def engine_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Map engine errors to JSON responses."""
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    log.warn("Request failed", {"status": status, "error": errors.get_error_message(exc)})
    return JSONResponse(status_code=status, content={"error": errors.get_error_message(exc)})


# ============================================================================
# API Routes
# ============================================================================


@app.put("/api/cookies")
async def load_cookies(
    records: list[dict[str, Any]],
    store: record_store.InMemoryRecordStore = Depends(get_store),
) -> dict[str, int]:
    """Replace the cookie jar the session scans."""
    return {"count": store.replace(records)}


@app.post("/api/scan")
async def scan_endpoint(
    body: ScanRequest,
    session: cookie_session.CookieAnalysisSession = Depends(get_session),
) -> dict[str, Any]:
    """Scan the jar and return the new analysis."""
    log.info("Incoming scan request", {"scope": body.scope, "domain": body.domain})
    result = await session.scan(body.scope, body.domain)
    return {"status": result.status_message(), "result": _dump(result)}


@app.get("/api/analysis")
async def analysis_endpoint(
    session: cookie_session.CookieAnalysisSession = Depends(get_session),
) -> dict[str, Any]:
    """Last analysis with its scan context and insights, restoring it if needed."""
    result = session.result or await session.restore()
    return {
        "status": result.status_message(),
        "result": _dump(result),
        "context": _dump(session.context) if session.context else None,
        "insights": _dump(session.insights) if session.insights else None,
    }


@app.get("/api/issues")
async def issues_endpoint(
    category: view.Category | None = Query(None, description="Category tab"),
    q: str | None = Query(None, description="Search pattern"),
    page: int | None = Query(None, ge=1, description="Page number"),
    session: cookie_session.CookieAnalysisSession = Depends(get_session),
) -> dict[str, Any]:
    """Current issues page, after applying any view changes given."""
    if category is not None:
        session.set_category(category)
    if q is not None:
        session.set_query(q)
    issues = session.go_to_page(page) if page is not None else session.issues_page()
    return {
        "page": _dump(issues),
        "label": issues.label,
        "hasPrevious": issues.has_previous,
        "hasNext": issues.has_next,
        "state": _dump(session.view_state),
    }


@app.get("/api/categories")
async def categories_endpoint(
    session: cookie_session.CookieAnalysisSession = Depends(get_session),
) -> dict[str, int]:
    """Finding count per category tab."""
    return session.category_counts()


@app.get("/api/cookies")
async def cookies_endpoint(
    q: str = Query("", description="Search pattern"),
    session: cookie_session.CookieAnalysisSession = Depends(get_session),
) -> dict[str, Any]:
    listing = session.list_cookies(q)
    return {**_dump(listing), "shown": listing.shown}


@app.get("/api/domains")
async def domains_endpoint(
    q: str = Query("", description="Search pattern"),
    expanded: bool = Query(False, description="Show every domain"),
    session: cookie_session.CookieAnalysisSession = Depends(get_session),
) -> dict[str, Any]:
    listing = session.list_domains(q, expanded=expanded)
    return {**_dump(listing), "hasMore": listing.has_more}


@app.get("/api/domains/{domain}/cookies")
async def domain_cookies_endpoint(
    domain: str,
    q: str = Query("", description="Search pattern"),
    session: cookie_session.CookieAnalysisSession = Depends(get_session),
) -> dict[str, Any]:
    listing = await session.domain_cookies(domain, q)
    return {**_dump(listing), "shown": listing.shown}


@app.get("/api/domains/{domain}/stats")
async def domain_stats_endpoint(
    domain: str,
    session: cookie_session.CookieAnalysisSession = Depends(get_session),
) -> dict[str, Any]:
    return _dump(await session.domain_stats(domain))


@app.get("/api/export")
async def export_endpoint(
    session: cookie_session.CookieAnalysisSession = Depends(get_session),
) -> JSONResponse:
    """Download the current analysis as a JSON report."""
    if session.result is None:
        await session.restore()
    report = session.export_report()
    return JSONResponse(
        content=_dump(report),
        headers={"Content-Disposition": f'attachment; filename="{report.file_name()}"'},
    )


@app.post("/api/removals")
async def removals_endpoint(
    body: RemovalRequest,
    session: cookie_session.CookieAnalysisSession = Depends(get_session),
) -> Any:
    """Remove cookies; without ``confirm`` only the prompt is returned (409)."""
    plan = _build_plan(session, body)
    if not body.confirm:
        return JSONResponse(status_code=409, content={"prompt": plan.prompt, "requested": plan.requested})
    if plan.is_empty:
        return {"message": "No cookies to delete", "report": _dump(removal.RemovalReport())}

    report = await session.apply_removal(plan.confirm())
    return {
        "message": report.message,
        "report": _dump(report),
        "status": session.status_message(),
    }


# ============================================================================
# Start Server
# ============================================================================


def main() -> None:
    """Entry point for running the server."""
    log.section("Keksregal Server Started")
    log.success(f"Server listening on {HOST}:{PORT}")
    log.info("Environment", {"env": "production" if IS_PRODUCTION else "development"})
    if config.get_settings().enable_ai and (problem := validate_llm_config()):
        log.warn(problem)

    uvicorn.run(
        "keksregal.app:app",
        host=HOST,
        port=PORT,
        reload=not IS_PRODUCTION,
    )


if __name__ == "__main__":
    main()
