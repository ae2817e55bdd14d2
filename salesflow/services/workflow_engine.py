"""
Submission Workflow Engine - generic record lifecycle.

State machine (every WorkflowDefinition):

    Created ──append──▶ Pending ──status edit──▶ Approved | Rejected (terminal)

Operations:
  - create_submission: validate, assign ``<TYPE>-<YYYYMMDD>-<seq>``, append
    the Pending row, notify the submitter and the chain (``Created``).
  - on_status_edit: react to the status cell becoming exactly "Approved" or
    "Rejected"; store the status (an edit event may be the only
    record of it), stamp the Decision Date, then notify (event kind = status).
  - decide: reviewer API that writes the notes and goes through
    on_status_edit, which stores the status.
  - handle_event: entry point for typed FormSubmit / CellEdit events.

The row write is authoritative. Anything that goes wrong while resolving
recipients or sending is logged and reported, never raised back, and never
undoes the write.

Terminal guard: the Decision Date cell is written on the first terminal
transition only. A later edit of the status cell (same or other terminal
value) finds it set, or sees a terminal ``old_value``, and is skipped
without notifications.

Usage:
    from salesflow.services import get_services

    result = get_services().engine.create_submission("DGR", {...})
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping
from zoneinfo import ZoneInfo

from salesflow.core.exceptions import (
    InvalidTransitionError,
    MalformedEventError,
    RecordNotFoundError,
    ValidationError,
)
from salesflow.core.workflow_config import (
    SubmissionStatus,
    TERMINAL_STATUSES,
    WorkflowConfig,
    WorkflowDefinition,
    is_terminal,
)
from salesflow.models.records import Submission, cell_str
from salesflow.services.dispatcher import DispatchReport, NotificationDispatcher
from salesflow.services.events import CellEdit, FormSubmit, InboundEvent
from salesflow.services.id_generator import next_submission_id
from salesflow.services.message_templates import EVENT_CREATED
from salesflow.services.notification_chain import NotificationChainBuilder

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class WorkflowResult:
    """Outcome of one engine operation.

    ``event_kind`` is None and ``skipped`` holds the reason when the call
    changed nothing (ignored edit, already terminal, vanished row).
    ``report`` is None when the notification path itself crashed.
    """

    submission: Submission | None
    event_kind: str | None = None
    report: DispatchReport | None = None
    skipped: str | None = None

    @property
    def notified(self) -> bool:
        return self.report is not None and self.report.sent > 0

    def to_dict(self) -> dict:
        return {
            "submission": self.submission.to_dict() if self.submission else None,
            "event_kind": self.event_kind,
            "notifications": self.report.to_dict() if self.report else None,
            "skipped": self.skipped,
        }


class WorkflowEngine:

    def __init__(
        self,
        config: WorkflowConfig,
        store,
        chain_builder: NotificationChainBuilder,
        dispatcher: NotificationDispatcher,
        timezone: str = "Asia/Dhaka",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.chain_builder = chain_builder
        self.dispatcher = dispatcher
        self.tz = ZoneInfo(timezone)
        self._clock = clock

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        return datetime.now(self.tz)

    # ── Reads ────────────────────────────────────────────────────────────────

    def ensure_schema(self, definition: WorkflowDefinition) -> None:
        self.store.ensure_headers(definition.table, definition.headers)

    def submissions(self, workflow_type: str) -> list[Submission]:
        definition = self.config.workflow(workflow_type)
        return [
            Submission.from_row(definition, row, row_index=i)
            for i, row in enumerate(self.store.read(definition.table))
        ]

    def get_submission(self, workflow_type: str, submission_id: str) -> Submission:
        submission_id = cell_str(submission_id)
        for submission in self.submissions(workflow_type):
            if submission.id == submission_id:
                return submission
        raise RecordNotFoundError(f"{workflow_type} submission", submission_id)

    def _read_row(self, definition: WorkflowDefinition, row_index: int) -> Submission:
        rows = self.store.read(definition.table)
        if row_index < 0 or row_index >= len(rows):
            raise RecordNotFoundError(f"{definition.type} row", row_index)
        submission = Submission.from_row(definition, rows[row_index], row_index=row_index)
        if not submission.id:
            raise RecordNotFoundError(f"{definition.type} row", row_index)
        return submission

    # ── Create ───────────────────────────────────────────────────────────────

    def create_submission(self, workflow_type: str, fields: Mapping[str, Any]) -> WorkflowResult:
        """Validate *fields*, append a Pending record and notify.

        Raises:
            RecordNotFoundError: unknown workflow type.
            ValidationError: unknown field names or blank required fields.
        """
        definition = self.config.workflow(workflow_type)
        unknown = sorted(k for k in fields if k not in definition.form_fields)
        if unknown:
            raise ValidationError(
                f"Unknown field(s) for {definition.title}: {', '.join(unknown)}",
                details={k: "unknown field" for k in unknown},
            )
        values = {name: cell_str(fields.get(name)) for name in definition.form_fields}
        missing = [name for name in definition.required_fields if not values.get(name)]
        if missing:
            raise ValidationError(
                f"Missing required field(s): {', '.join(missing)}",
                details={name: "required" for name in missing},
            )

        self.ensure_schema(definition)
        now = self.now()
        existing = [s.id for s in self.submissions(workflow_type)]
        submission = Submission(
            workflow_type=definition.type,
            id=next_submission_id(existing, definition.type, now),
            timestamp=now.strftime(TIMESTAMP_FORMAT),
            submitter_email=values.pop("submitter_email", ""),
            status=SubmissionStatus.PENDING.value,
            fields={name: values.get(name, "") for name in definition.domain_fields},
        )
        submission.row_index = self.store.append(definition.table, submission.to_row(definition))
        logger.info(
            "Created %s %s by %s", definition.title, submission.id, submission.submitter_email,
            extra={"workflow_type": definition.type, "submission_id": submission.id},
        )

        report = self._notify(submission, definition, EVENT_CREATED)
        return WorkflowResult(submission, EVENT_CREATED, report)

    # ── Transitions ──────────────────────────────────────────────────────────

    def on_status_edit(
        self,
        workflow_type: str,
        row_index: int,
        new_status: str,
        old_status: str | None = None,
    ) -> WorkflowResult:
        """React to the status cell of *row_index* being set to *new_status*.

        Raises:
            RecordNotFoundError: the row cannot be re-read.
        """
        definition = self.config.workflow(workflow_type)
        submission = self._read_row(definition, row_index)
        new_status = cell_str(new_status)
        log_extra = {"workflow_type": definition.type, "submission_id": submission.id}

        if not is_terminal(new_status):
            logger.debug("Ignoring status %r on %s", new_status, submission.id, extra=log_extra)
            return WorkflowResult(submission, skipped=f"{new_status!r} is not a terminal status")

        if is_terminal(old_status) or submission.decided_at:
            logger.info(
                "%s already decided (%s); status edit to %s not re-notified",
                submission.id, submission.decided_at or old_status, new_status, extra=log_extra,
            )
            return WorkflowResult(submission, skipped="already terminal")

        decided_at = self.now().strftime(TIMESTAMP_FORMAT)
        self.store.write_cells(definition.table, row_index, {
            definition.status_column: new_status,
            definition.column_index("decided_at"): decided_at,
        })
        submission.decided_at = decided_at
        submission.status = new_status
        logger.info("%s %s → %s", definition.title, submission.id, new_status, extra=log_extra)

        report = self._notify(submission, definition, new_status)
        return WorkflowResult(submission, new_status, report)

    def decide(
        self,
        workflow_type: str,
        submission_id: str,
        status: str,
        notes: str | None = None,
    ) -> WorkflowResult:
        """Approve or reject a Pending submission.

        Raises:
            ValidationError: *status* is not Approved / Rejected.
            RecordNotFoundError: no such submission.
            InvalidTransitionError: the submission is already terminal.
        """
        status = cell_str(status)
        if not is_terminal(status):
            raise ValidationError(
                f"Decision must be one of {sorted(TERMINAL_STATUSES)}",
                details={"status": status},
            )
        definition = self.config.workflow(workflow_type)
        submission = self.get_submission(workflow_type, submission_id)
        if is_terminal(submission.status):
            raise InvalidTransitionError(submission.id, submission.status, status)
        if submission.decided_at:
            raise InvalidTransitionError(submission.id, f"decided on {submission.decided_at}", status)

        if notes:
            self.store.write_cell(
                definition.table, submission.row_index, definition.column_index("reviewer_notes"), cell_str(notes),
            )
        return self.on_status_edit(workflow_type, submission.row_index, status, old_status=submission.status)

    # ── Inbound events ───────────────────────────────────────────────────────

    def handle_event(self, event: InboundEvent) -> WorkflowResult:
        if isinstance(event, FormSubmit):
            return self._handle_form_submit(event)
        if isinstance(event, CellEdit):
            return self._handle_cell_edit(event)
        raise MalformedEventError(f"Unsupported event type: {type(event).__name__}")

    def _handle_form_submit(self, event: FormSubmit) -> WorkflowResult:
        definition = self.config.workflow(event.workflow_type)
        if len(event.values) > len(definition.form_fields):
            raise MalformedEventError(
                f"{definition.title} form has {len(definition.form_fields)} fields, "
                f"got {len(event.values)} values",
                details={"expected": list(definition.form_fields)},
            )
        fields = dict(zip(definition.form_fields, event.values))
        return self.create_submission(definition.type, fields)

    def _handle_cell_edit(self, event: CellEdit) -> WorkflowResult:
        if event.workflow_type:
            definition = self.config.workflow(event.workflow_type)
        else:
            definition = self.config.workflow_for_table(event.table)
        if definition is None:
            logger.debug("Edit on table %r is not a workflow table; ignored", event.table)
            return WorkflowResult(None, skipped="not a workflow table")
        if event.column != definition.status_column:
            return WorkflowResult(None, skipped="not the status column")
        try:
            return self.on_status_edit(definition.type, event.row, event.value, event.old_value)
        except RecordNotFoundError as exc:
            logger.warning("Status edit skipped: %s", exc, extra={"workflow_type": definition.type})
            return WorkflowResult(None, skipped=str(exc))

    # ── Notification ─────────────────────────────────────────────────────────

    def _notify(self, submission: Submission, definition: WorkflowDefinition, event_kind: str) -> DispatchReport | None:
        """Submitter message + chain alert. Failures are logged, never raised."""
        try:
            report = self.dispatcher.notify_submitter(submission, event_kind, definition)
            business_unit = submission.get(definition.business_unit_field) if definition.business_unit_field else ""
            chain = self.chain_builder.build_chain(
                submission.get(definition.location_field),
                business_unit,
                roles=definition.chain_roles or None,
                vacancy_fallback=definition.vacancy_fallback,
            )
            report.merge(self.dispatcher.notify(submission, event_kind, chain, definition))
        except Exception:
            logger.exception(
                "Notification for %s (%s) failed; record is kept", submission.id, event_kind,
                extra={"workflow_type": definition.type, "submission_id": submission.id, "event_kind": event_kind},
            )
            return None
        logger.info(
            "Notified %s (%s): sent=%d failed=%d skipped=%d",
            submission.id, event_kind, report.sent, report.failed, report.skipped,
            extra={"submission_id": submission.id, "event_kind": event_kind},
        )
        return report
