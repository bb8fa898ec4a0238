"""Sequential, confirmed removal of cookie batches."""

from __future__ import annotations

from keksregal.models import removal
from keksregal.services import record_store
from keksregal.utils import errors, logger

log = logger.create_logger("Removal")


async def execute(
    store: record_store.RecordStore,
    plan: removal.RemovalPlan,
) -> removal.RemovalReport:
    """Remove every cookie in a confirmed plan, one at a time.

    A failure on one cookie is logged and recorded; the batch
    continues with the next cookie.

    Args:
        store: Record store to remove from.
        plan: A plan that has been confirmed by the user.

    Returns:
        Report separating removed from failed identities.

    Raises:
        errors.ConfirmationRequiredError: When the plan has not
            been confirmed.  No removal call is made.
    """
    if not plan.confirmed:
        raise errors.ConfirmationRequiredError(plan.prompt)

    report = removal.RemovalReport(requested=plan.requested)
    log.start_timer("removal")
    for identity in plan.identities:
        try:
            removed = await store.remove(identity)
        except Exception as exc:
            log.warn(
                "Cookie removal failed",
                {"name": identity.name, "domain": identity.domain, "error": errors.get_error_message(exc)},
            )
            report.failed.append(identity)
            continue
        if removed:
            report.removed.append(identity)
        else:
            log.warn("Cookie not removed", {"name": identity.name, "domain": identity.domain})
            report.failed.append(identity)
    log.end_timer("removal", report.message)
    return report
