"""
SalesFlow workflow service
Workflow Blueprint.

Provides:
    - Inbound events (form submissions, status-cell edits)
    - Submission create / read / decision (approve, reject)
    - Outbound message audit log

Service exceptions (ValidationError, RecordNotFoundError,
InvalidTransitionError) are translated by the handlers registered in
``create_app``.
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from salesflow.models.message_log import MessageLog
from salesflow.services import get_services
from salesflow.services.events import parse_inbound_event
from salesflow.services.message_templates import EVENT_CREATED
from salesflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)

workflow_bp = Blueprint("workflow_bp", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  INBOUND EVENTS
# ═══════════════════════════════════════════════════════════════════════════

@workflow_bp.route("/events", methods=["POST"])
def receive_event():
    """Accept a form_submit or cell_edit event.

    201 when a submission was created, 200 for a processed transition,
    202 when the event was valid but changed nothing.
    """
    event = parse_inbound_event(request.get_json(silent=True))
    result = get_services().engine.handle_event(event)
    if result.skipped:
        return jsonify(result.to_dict()), 202
    status = 201 if result.event_kind == EVENT_CREATED else 200
    return jsonify(result.to_dict()), status


# ═══════════════════════════════════════════════════════════════════════════
#  SUBMISSIONS
# ═══════════════════════════════════════════════════════════════════════════

@workflow_bp.route("/workflows", methods=["GET"])
def list_workflows():
    config = get_services().config
    return jsonify([
        {
            "type": wf.type,
            "title": wf.title,
            "table": wf.table,
            "form_fields": list(wf.form_fields),
            "required_fields": list(wf.required_fields),
            "chain_roles": list(wf.chain_roles),
        }
        for wf in config.workflows.values()
    ])


@workflow_bp.route("/submissions/<workflow_type>", methods=["POST"])
def create_submission(workflow_type):
    """Create a submission from named form fields."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_REQUIRED, "JSON object body is required")
    result = get_services().engine.create_submission(workflow_type, data)
    return jsonify(result.to_dict()), 201


@workflow_bp.route("/submissions/<workflow_type>", methods=["GET"])
def list_submissions(workflow_type):
    status = request.args.get("status")
    submissions = get_services().engine.submissions(workflow_type)
    if status:
        submissions = [s for s in submissions if s.status == status]
    return jsonify([s.to_dict() for s in submissions])


@workflow_bp.route("/submissions/<workflow_type>/<submission_id>", methods=["GET"])
def get_submission(workflow_type, submission_id):
    submission = get_services().engine.get_submission(workflow_type, submission_id)
    return jsonify(submission.to_dict())


@workflow_bp.route("/submissions/<workflow_type>/<submission_id>/decision", methods=["POST"])
def decide_submission(workflow_type, submission_id):
    """Approve or reject: body ``{"status": "Approved", "notes": "..."}``."""
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip()
    if not status:
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    result = get_services().engine.decide(workflow_type, submission_id, status, data.get("notes"))
    return jsonify(result.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  MESSAGE LOG
# ═══════════════════════════════════════════════════════════════════════════

@workflow_bp.route("/messages", methods=["GET"])
def list_messages():
    """Outbound message audit, newest first. Filters: submission_id, status."""
    q = MessageLog.query
    submission_id = request.args.get("submission_id")
    if submission_id:
        q = q.filter_by(submission_id=submission_id)
    status = request.args.get("status")
    if status:
        q = q.filter_by(status=status)
    limit = min(request.args.get("limit", 100, type=int), 500)
    logs = q.order_by(MessageLog.id.desc()).limit(limit).all()
    return jsonify([log.to_dict() for log in logs])
