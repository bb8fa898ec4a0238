"""
Cookie analysis session.

Holds the one ``AnalysisResult`` of the last scan together with
its scan context, the issues view state and the optional
insights.  Every mutation of the cookie set goes through
``apply_removal`` which removes, recomputes and persists under a
single lock, so readers never observe a half-updated result.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, date, datetime

from keksregal import agents, config
from keksregal.analysis import evaluator, listings, recompute, selection, taxonomy
from keksregal.analysis import view as view_mod
from keksregal.models import analysis, cookies, removal, view
from keksregal.models.findings import Finding
from keksregal.services import record_store, state_store
from keksregal.services import removal as removal_service
from keksregal.utils import errors, logger

log = logger.create_logger("CookieSession")

InsightsProvider = Callable[[analysis.AnalysisResult, float], Awaitable[analysis.CookieInsights | None]]


async def _agent_insights(result: analysis.AnalysisResult, now: float) -> analysis.CookieInsights | None:
    return await agents.get_cookie_insights_agent().analyse(result, now=now)


class CookieAnalysisSession:
    """Scan, browse and clean up cookies from one record store.

    Args:
        store: Where cookies are enumerated from and removed.
        state: Persistence for the last scan; a ``StateStore``
            in ``settings.state_dir`` when omitted.
        settings: Engine options; the process-wide settings
            when omitted.
        clock: Returns the current time in epoch seconds.
        insights: Optional summarizer.  Defaults to the LLM
            insights agent when ``settings.enable_ai`` is set.
    """

    def __init__(
        self,
        store: record_store.RecordStore,
        state: state_store.StateStore | None = None,
        settings: config.EngineSettings | None = None,
        *,
        clock: Callable[[], float] = time.time,
        insights: InsightsProvider | None = None,
    ) -> None:
        self._settings = settings or config.get_settings()
        self._store = store
        self._state = state or state_store.StateStore(self._settings.state_dir)
        self._clock = clock
        self._insights_provider = insights or (_agent_insights if self._settings.enable_ai else None)
        self._lock = asyncio.Lock()

        self._result: analysis.AnalysisResult | None = None
        self._context: analysis.ScanContext | None = None
        self._insights: analysis.CookieInsights | None = None
        self._view = view_mod.ViewController(page_size=self._settings.page_size)

    # ==========================================================================
    # State Getters
    # ==========================================================================

    @property
    def result(self) -> analysis.AnalysisResult | None:
        return self._result

    @property
    def context(self) -> analysis.ScanContext | None:
        return self._context

    @property
    def insights(self) -> analysis.CookieInsights | None:
        return self._insights

    @property
    def view_state(self) -> view.ViewState:
        return self._view.state

    @property
    def records(self) -> list[cookies.CookieRecord]:
        """Cookies of the last scan, empty before any scan."""
        return list(self._result.cookies) if self._result else []

    @property
    def findings(self) -> list[Finding]:
        return list(self._result.findings) if self._result else []

    def status_message(self) -> str:
        if self._result is None:
            return "No scan yet."
        return self._result.status_message()

    # ==========================================================================
    # Scanning
    # ==========================================================================

    async def scan(self, scope: analysis.ScanScope = "all", domain: str | None = None) -> analysis.AnalysisResult:
        """Enumerate the store and replace the current analysis.

        Args:
            scope: ``all`` for every cookie, ``current`` for the
                cookies of *domain* only.
            domain: Page domain; also the reference domain for
                third-party detection in ``current`` scope.

        Raises:
            ValueError: ``current`` scope without a domain.
            errors.ScanError: The store could not be enumerated.
                Nothing is stored in that case.
        """
        if scope == "current" and not domain:
            raise ValueError("A domain is required to scan the current site")

        async with self._lock:
            logger.start_log_file(domain or "all-cookies")
            try:
                return await self._scan_locked(scope, domain)
            finally:
                logger.end_log_file()

    async def _scan_locked(self, scope: analysis.ScanScope, domain: str | None) -> analysis.AnalysisResult:
        log.section(f"Cookie scan: {domain if scope == 'current' else 'all cookies'}")
        log.start_timer("scan")

        try:
            records = await self._store.enumerate(domain if scope == "current" else None)
        except Exception as exc:
            log.error("Failed to enumerate cookies", {"error": errors.get_error_message(exc)})
            raise errors.ScanError(f"Failed to analyze cookies: {errors.get_error_message(exc)}") from exc

        now = self._clock()
        context = analysis.ScanContext(
            scope=scope,
            domain=domain if scope == "current" else None,
            scan_time=datetime.fromtimestamp(now, UTC).isoformat(),
        )
        result = evaluator.evaluate(records, context.reference_domain, now=now)
        insights = await self._summarize(result, now)

        self._result = result
        self._context = context
        self._insights = insights
        self._view.reset()
        self._persist(with_context=True)

        log.end_timer("scan", result.status_message())
        return result

    async def _summarize(self, result: analysis.AnalysisResult, now: float) -> analysis.CookieInsights | None:
        if self._insights_provider is None or not result.total_cookies:
            return None
        try:
            return await self._insights_provider(result, now)
        except Exception as exc:
            log.warn("Cookie insights unavailable", {"error": errors.get_error_message(exc)})
            return None

    async def restore(self) -> analysis.AnalysisResult:
        """Load the last scan, or rescan when none is stored.

        A stored result without cookies counts as missing; the
        rescan reuses the stored scan context when there is one.
        """
        stored = self._state.load_analysis()
        context = self._state.load_scan_context()

        if stored is None or not stored.total_cookies:
            log.info("No stored analysis, rescanning", {"scope": context.scope if context else "all"})
            if context is not None:
                return await self.scan(context.scope, context.domain)
            return await self.scan()

        async with self._lock:
            self._result = stored
            self._context = context
            self._insights = self._state.load_insights()
            self._view = view_mod.ViewController(self._state.load_view_state(), page_size=self._settings.page_size)
        log.success("Stored analysis restored", {"cookies": stored.total_cookies, "issues": stored.total_issues})
        return stored

    # ==========================================================================
    # Issues View
    # ==========================================================================

    def issues_page(self) -> view.IssuesPage:
        page = self._view.current_slice(self.findings)
        self._state.save_view_state(self._view.state)
        return page

    def set_category(self, category: view.Category) -> view.IssuesPage:
        self._view.set_category(category)
        return self.issues_page()

    def set_query(self, text: str) -> view.IssuesPage:
        self._view.set_query(text)
        return self.issues_page()

    def go_to_page(self, page: int) -> view.IssuesPage:
        self._view.go_to_page(page, self.findings)
        return self.issues_page()

    def next_page(self) -> view.IssuesPage:
        self._view.next_page(self.findings)
        return self.issues_page()

    def previous_page(self) -> view.IssuesPage:
        self._view.previous_page(self.findings)
        return self.issues_page()

    def category_counts(self) -> dict[view.Category, int]:
        return taxonomy.category_counts(self.findings)

    # ==========================================================================
    # Listings
    # ==========================================================================

    def list_cookies(self, pattern: str = "") -> analysis.CookieListing:
        return listings.list_cookies(self.records, pattern)

    def list_domains(self, pattern: str = "", *, expanded: bool = False) -> analysis.DomainListing:
        histogram = self._result.domain_histogram if self._result else {}
        return listings.list_domains(
            histogram,
            pattern,
            limit=self._settings.domain_list_limit,
            expanded=expanded,
        )

    async def domain_cookies(self, domain: str, pattern: str = "") -> analysis.CookieListing:
        """Live cookies of *domain* (and its subdomains) from the store."""
        try:
            records = await self._store.enumerate(domain)
        except Exception as exc:
            raise errors.CookieStoreError(f"Failed to load cookies for {domain}: {errors.get_error_message(exc)}") from exc
        return listings.list_cookies(records, pattern)

    async def domain_stats(self, domain: str) -> analysis.DomainCookieStats:
        try:
            records = await self._store.enumerate(domain)
        except Exception as exc:
            raise errors.CookieStoreError(f"Failed to load cookies for {domain}: {errors.get_error_message(exc)}") from exc
        return listings.domain_stats(records)

    # ==========================================================================
    # Export
    # ==========================================================================

    def export_report(self) -> analysis.AnalysisExport:
        """JSON report of the current analysis, stamped with the export time.

        Raises:
            ValueError: No scan has produced an analysis yet.
        """
        if self._result is None:
            raise ValueError("No analysis to export, run a scan first")
        scan_time = datetime.fromtimestamp(self._clock(), UTC).isoformat()
        report = analysis.AnalysisExport.from_result(self._result, scan_time=scan_time)
        log.info("Analysis exported", {"findings": len(report.abnormalities), "domains": len(report.domains)})
        return report

    # ==========================================================================
    # Removal
    # ==========================================================================

    def plan_selected(self, keys: Iterable[str]) -> removal.RemovalPlan:
        return selection.select_keys(self.records, keys)

    def plan_domain(self, domain: str) -> removal.RemovalPlan:
        return selection.select_domain(self.records, domain)

    def plan_domains(self, domains: Iterable[str]) -> removal.RemovalPlan:
        return selection.select_domains(self.records, domains)

    def plan_name_on_domain(self, name: str, domain: str) -> removal.RemovalPlan:
        return selection.select_name_on_domain(self.records, name, domain)

    def plan_insecure(self) -> removal.RemovalPlan:
        return selection.select_insecure(self.records)

    def plan_problematic(self) -> removal.RemovalPlan:
        return selection.select_problematic(self.records, self.findings)

    def plan_expiring(
        self,
        *,
        before: date | datetime | float | None = None,
        after: date | datetime | float | None = None,
    ) -> removal.RemovalPlan:
        return selection.select_expiring(self.records, before=before, after=after)

    async def apply_removal(self, plan: removal.RemovalPlan) -> removal.RemovalReport:
        """Execute a confirmed plan, then recompute and persist.

        Only identities the store actually removed are dropped
        from the analysis; failed ones stay.

        Raises:
            errors.ConfirmationRequiredError: The plan is not
                confirmed.  Nothing is removed.
        """
        if not plan.confirmed:
            raise errors.ConfirmationRequiredError(plan.prompt)

        async with self._lock:
            report = await removal_service.execute(self._store, plan)
            if self._result is not None:
                self._result = recompute.recompute(
                    self._result,
                    removed_keys=report.removed,
                    reference_domain=self._context.reference_domain if self._context else None,
                    now=self._clock(),
                )
                self._persist()
        log.info(report.message, {"failed": len(report.failed)})
        return report

    # ==========================================================================
    # Persistence
    # ==========================================================================

    def _persist(self, *, with_context: bool = False) -> None:
        if self._result is None:
            return
        self._state.save_analysis(self._result)
        self._state.save_view_state(self._view.state)
        if with_context:
            if self._context is not None:
                self._state.save_scan_context(self._context)
            self._state.save_insights(self._insights)
