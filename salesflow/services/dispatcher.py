"""
Notification Dispatcher - renders and sends workflow messages.

For one submission event it sends:
  - one message to the submitter (looked up by email in the directory)
  - one message per recipient per chain tier (duplicates across tiers kept)

Every attempt is recorded in MessageLog. A DeliveryError for one recipient
is logged and recorded as ``failed``; the loop moves on. Nothing raised by
a send ever reaches the workflow engine. No retries, no dedup against
earlier events: at most one message per recipient per call.

Sends are issued one after another in chain order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from salesflow.core.exceptions import DeliveryError
from salesflow.core.workflow_config import WorkflowDefinition
from salesflow.models import db
from salesflow.models.message_log import MessageLog
from salesflow.models.records import Employee, Submission
from salesflow.services.message_templates import (
    AUDIENCE_CHAIN,
    AUDIENCE_SUBMITTER,
    build_context,
    render,
)
from salesflow.services.notification_chain import NotificationChain

logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def merge(self, other: "DispatchReport") -> "DispatchReport":
        self.sent += other.sent
        self.failed += other.failed
        self.skipped += other.skipped
        self.errors.extend(other.errors)
        return self

    def to_dict(self) -> dict:
        return {"sent": self.sent, "failed": self.failed, "skipped": self.skipped, "errors": self.errors}


class NotificationDispatcher:

    def __init__(self, messenger, directory) -> None:
        self.messenger = messenger
        self.directory = directory

    # ── Public API ───────────────────────────────────────────────────────────

    def notify(
        self,
        submission: Submission,
        event_kind: str,
        chain: NotificationChain,
        definition: WorkflowDefinition,
    ) -> DispatchReport:
        """Send the chain alert for *event_kind* to every resolved recipient."""
        report = DispatchReport()
        submitter = self.directory.find_by_email(submission.submitter_email)
        context = build_context(submission, definition, submitter)
        for tier in chain:
            for employee in tier.recipients:
                text = render(
                    submission.workflow_type, event_kind, AUDIENCE_CHAIN, context,
                    recipient=employee, fallback=tier.fallback, role=tier.role,
                )
                self._deliver(
                    report, submission, event_kind, AUDIENCE_CHAIN, employee, text,
                    role=tier.role, fallback=tier.fallback,
                )
        if not chain.tiers:
            logger.warning(
                "No chain recipients for %s (%s)", submission.id, event_kind,
                extra={"submission_id": submission.id, "event_kind": event_kind},
            )
        return report

    def notify_submitter(
        self,
        submission: Submission,
        event_kind: str,
        definition: WorkflowDefinition,
    ) -> DispatchReport:
        """Send the submitter's confirmation / outcome message."""
        report = DispatchReport()
        submitter = self.directory.find_by_email(submission.submitter_email)
        if submitter is None:
            logger.warning(
                "Submitter %s of %s not in directory; confirmation skipped",
                submission.submitter_email, submission.id,
                extra={"submission_id": submission.id},
            )
            report.skipped += 1
            self._log(submission, event_kind, AUDIENCE_SUBMITTER, None, None, None, False,
                      "skipped", "submitter not in directory")
            return report
        context = build_context(submission, definition, submitter)
        text = render(submission.workflow_type, event_kind, AUDIENCE_SUBMITTER, context, recipient=submitter)
        self._deliver(report, submission, event_kind, AUDIENCE_SUBMITTER, submitter, text, role=submitter.role)
        return report

    # ── Internals ────────────────────────────────────────────────────────────

    def _deliver(
        self,
        report: DispatchReport,
        submission: Submission,
        event_kind: str,
        audience: str,
        employee: Employee,
        text: str,
        *,
        role: str | None = None,
        fallback: bool = False,
    ) -> None:
        address = employee.contact_address
        if not address:
            logger.warning("%s %s has no WhatsApp or contact number", employee.role, employee.id,
                           extra={"submission_id": submission.id, "employee_id": employee.id})
            report.skipped += 1
            self._log(submission, event_kind, audience, role, employee.id, None, fallback,
                      "skipped", "no contact address")
            return
        try:
            self.messenger.send(address, text)
        except DeliveryError as exc:
            logger.warning(
                "Delivery of %s/%s to %s (%s) failed: %s",
                submission.id, event_kind, employee.id, address, exc.reason,
                extra={"submission_id": submission.id, "event_kind": event_kind, "employee_id": employee.id},
            )
            report.failed += 1
            report.errors.append(str(exc))
            self._log(submission, event_kind, audience, role, employee.id, address, fallback,
                      "failed", exc.reason)
            return
        report.sent += 1
        self._log(submission, event_kind, audience, role, employee.id, address, fallback, "sent", None)

    def _log(self, submission, event_kind, audience, role, employee_id, address, fallback, status, error):
        try:
            db.session.add(MessageLog(
                submission_id=submission.id,
                workflow_type=submission.workflow_type,
                event_kind=event_kind,
                audience=audience,
                role=role,
                employee_id=employee_id,
                address=address,
                fallback=fallback,
                status=status,
                error_message=error,
            ))
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.exception("Failed to write MessageLog for %s", submission.id,
                             extra={"submission_id": submission.id})
