"""
SalesFlow workflow service
Outbound message audit model.

Models:
    - MessageLog: one row per attempted send (sent / failed / skipped)
"""

from datetime import datetime, timezone

from salesflow.models import db


# ── Constants ────────────────────────────────────────────────────────────────

MESSAGE_STATUSES = {"sent", "failed", "skipped"}
MESSAGE_AUDIENCES = {"submitter", "chain"}


class MessageLog(db.Model):
    """
    Audit record of a notification attempt.

    One record per recipient per event, including skipped recipients with
    no contact address.
    """

    __tablename__ = "message_logs"

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(db.String(40), nullable=False, index=True)
    workflow_type = db.Column(db.String(10), nullable=False)
    event_kind = db.Column(db.String(20), nullable=False)
    audience = db.Column(db.String(20), default="chain")
    role = db.Column(db.String(10), nullable=True)
    employee_id = db.Column(db.String(20), nullable=True, index=True)
    address = db.Column(db.String(40), nullable=True)
    fallback = db.Column(db.Boolean, default=False)
    status = db.Column(db.String(20), nullable=False, default="sent")
    error_message = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "submission_id": self.submission_id,
            "workflow_type": self.workflow_type,
            "event_kind": self.event_kind,
            "audience": self.audience,
            "role": self.role,
            "employee_id": self.employee_id,
            "address": self.address,
            "fallback": self.fallback,
            "status": self.status,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<MessageLog {self.id}: {self.submission_id} -> {self.address} [{self.status}]>"
