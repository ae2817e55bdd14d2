"""
WhatsApp message templates.

Templates are keyed by ``(workflow_type, event_kind)`` and carry one text
per audience:

    submitter - confirmation / outcome sent to whoever submitted the record
    chain     - alert sent to every employee of the notification chain

Event kinds are ``Created``, ``Approved`` and ``Rejected``. Workflows
without a dedicated template use ``_DEFAULT_TEMPLATES[event_kind]``, whose
``{details}`` placeholder lists every domain field of the record.

Unknown placeholders render literally (``{foo}``) instead of raising.
"""

from __future__ import annotations

from typing import Any

from salesflow.core.workflow_config import WorkflowDefinition
from salesflow.models.records import Employee, Submission

EVENT_CREATED = "Created"
EVENT_APPROVED = "Approved"
EVENT_REJECTED = "Rejected"
EVENT_KINDS = (EVENT_CREATED, EVENT_APPROVED, EVENT_REJECTED)

AUDIENCE_SUBMITTER = "submitter"
AUDIENCE_CHAIN = "chain"


# ═══════════════════════════════════════════════════════════════════════════
#  Generic templates
# ═══════════════════════════════════════════════════════════════════════════

_DEFAULT_TEMPLATES: dict[str, dict[str, str]] = {
    EVENT_CREATED: {
        AUDIENCE_SUBMITTER: (
            "✅ *{title} Submitted*\n\n"
            "*ID:* {id}\n"
            "{details}\n\n"
            "Your {title_lower} has been received and is pending review.\n\n"
            "*Submission Time:* {timestamp}"
        ),
        AUDIENCE_CHAIN: (
            "🔔 *New {title}*\n\n"
            "*ID:* {id}\n"
            "{details}\n"
            "*Submitted by:* {submitter}\n\n"
            "*Status:* {status}\n"
            "*Submission Time:* {timestamp}"
        ),
    },
    EVENT_APPROVED: {
        AUDIENCE_SUBMITTER: (
            "✅ *{title} Approved*\n\n"
            "*ID:* {id}\n"
            "{details}\n\n"
            "*Approval Date:* {decided_at}\n"
            "{reviewer_notes_line}"
        ),
        AUDIENCE_CHAIN: (
            "✅ *{title} Approved*\n\n"
            "*ID:* {id}\n"
            "{details}\n"
            "*Submitted by:* {submitter}\n"
            "*Approval Date:* {decided_at}"
        ),
    },
    EVENT_REJECTED: {
        AUDIENCE_SUBMITTER: (
            "❌ *{title} Rejected*\n\n"
            "*ID:* {id}\n"
            "{details}\n\n"
            "*Rejection Date:* {decided_at}\n"
            "{reviewer_notes_line}\n"
            "Please review the reason and resubmit with modifications if needed."
        ),
        AUDIENCE_CHAIN: (
            "❌ *{title} Rejected*\n\n"
            "*ID:* {id}\n"
            "{details}\n"
            "*Submitted by:* {submitter}\n"
            "*Rejection Date:* {decided_at}"
        ),
    },
}


# ═══════════════════════════════════════════════════════════════════════════
#  Workflow-specific templates
# ═══════════════════════════════════════════════════════════════════════════

_TEMPLATES: dict[tuple[str, str], dict[str, str]] = {
    ("DGR", EVENT_CREATED): {
        AUDIENCE_SUBMITTER: (
            "✅ *Demand Generation Request Submitted*\n\n"
            "*Request ID:* {id}\n"
            "*Territory:* {territory}\n"
            "*Bazaar:* {bazaar}\n"
            "*Area:* {area}\n"
            "*Business Unit:* {business_unit}\n"
            "*Reason:* {reason}\n\n"
            "Your request has been forwarded to the BD team for review.\n\n"
            "*Submission Time:* {timestamp}"
        ),
        AUDIENCE_CHAIN: (
            "🎯 *New Demand Generation Request*\n\n"
            "*Request ID:* {id}\n"
            "*Submitted by:* {submitter}\n"
            "*Territory:* {territory}\n"
            "*Bazaar:* {bazaar}\n"
            "*Area:* {area}\n"
            "*Business Unit:* {business_unit}\n"
            "*Reason:* {reason}\n\n"
            "*Review Guidelines:*\n"
            "- Assess market potential and viability\n"
            "- Verify territory and area feasibility\n\n"
            "*Submission Time:* {timestamp}"
        ),
    },
    ("DGR", EVENT_APPROVED): {
        AUDIENCE_SUBMITTER: (
            "✅ *Demand Generation Request Approved*\n\n"
            "*Request ID:* {id}\n"
            "*Territory:* {territory}\n"
            "*Bazaar:* {bazaar}\n"
            "*Area:* {area}\n"
            "*Business Unit:* {business_unit}\n\n"
            "Your demand generation request has been approved.\n"
            "- Approval Date: {decided_at}\n\n"
            "📋 *Next Steps:*\n"
            "Proceed with implementing the demand generation strategy according to approved guidelines."
        ),
    },
    ("DGR", EVENT_REJECTED): {
        AUDIENCE_SUBMITTER: (
            "❌ *Demand Generation Request Rejected*\n\n"
            "*Request ID:* {id}\n"
            "*Territory:* {territory}\n"
            "*Bazaar:* {bazaar}\n"
            "*Area:* {area}\n"
            "*Business Unit:* {business_unit}\n"
            "*Rejection Reason:* {reviewer_notes}\n\n"
            "- Rejection Date: {decided_at}\n\n"
            "📋 *Next Steps:*\n"
            "Please contact your BD Incharge for more information or resubmit with modifications."
        ),
    },
    ("RPR", EVENT_CREATED): {
        AUDIENCE_CHAIN: (
            "🏪 *New Retailer Point Request*\n\n"
            "*Request ID:* {id}\n"
            "*Submitted by:* {submitter}\n"
            "*Territory:* {territory}\n"
            "*Location:* {location}\n"
            "*Company:* {business_unit}\n\n"
            "Please review and update the status in the Retailer Point Requests table.\n\n"
            "*Submission Time:* {timestamp}"
        ),
    },
    ("DIS", EVENT_CREATED): {
        AUDIENCE_CHAIN: (
            "New Dispute Raised: {id}\n"
            "Order ID: {order_id}\n"
            "Reason: {reason}\n"
            "Raised by: {submitter}"
        ),
    },
}

_FALLBACK_BANNER = "⚠️ *FALLBACK NOTIFICATION*\n\n"
_FALLBACK_NOTE = (
    "\n\n⚠️ *Note:* No specific {role} found for territory \"{territory}\" and "
    "business unit \"{business_unit}\". Please coordinate among the team to "
    "assign responsibility for this request."
)


class _SafeDict(dict):
    """Dict that returns {key} for missing keys instead of raising."""

    def __missing__(self, key):
        return f"{{{key}}}"


def template_for(workflow_type: str, event_kind: str, audience: str) -> str:
    specific = _TEMPLATES.get((workflow_type, event_kind), {})
    if audience in specific:
        return specific[audience]
    return _DEFAULT_TEMPLATES.get(event_kind, _DEFAULT_TEMPLATES[EVENT_CREATED])[audience]


def build_context(
    submission: Submission,
    definition: WorkflowDefinition,
    submitter: Employee | None = None,
) -> dict[str, Any]:
    """Template variables for *submission*: base fields, domain fields, helpers."""
    ctx: dict[str, Any] = dict(submission.to_dict())
    ctx["title"] = definition.title
    ctx["title_lower"] = definition.title.lower()
    ctx["submitter"] = (
        f"{submitter.name} ({submitter.role})" if submitter else submission.submitter_email
    )
    ctx["reviewer_notes_line"] = (
        f"*Reviewer Notes:* {submission.reviewer_notes}" if submission.reviewer_notes else ""
    )
    headers = dict((name, header) for header, name in definition.columns)
    ctx["details"] = "\n".join(
        f"*{headers[name]}:* {submission.get(name)}"
        for name in definition.domain_fields
        if submission.get(name)
    )
    return ctx


def render(
    workflow_type: str,
    event_kind: str,
    audience: str,
    context: dict[str, Any],
    *,
    recipient: Employee | None = None,
    fallback: bool = False,
    role: str | None = None,
) -> str:
    """Render one message. Fallback chain messages carry a warning banner and note."""
    ctx = _SafeDict(context)
    if recipient is not None:
        ctx["recipient_name"] = recipient.name
        ctx["recipient_role"] = recipient.role
    text = template_for(workflow_type, event_kind, audience).format_map(ctx)
    if fallback:
        note = _FALLBACK_NOTE.format_map(_SafeDict(
            role=role or "recipient",
            territory=context.get("territory", ""),
            business_unit=context.get("business_unit", ""),
        ))
        text = _FALLBACK_BANNER + text + note
    return text
