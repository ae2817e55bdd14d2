"""Tests for salesflow.services.dispatcher and message_templates.

Coverage
--------
    1. one message per resolved recipient per event, duplicates kept
    2. DeliveryError for one recipient is logged, recorded, never raised
    3. recipients without an address are skipped and recorded
    4. submitter confirmation looked up by email; missing submitter skipped
    5. templates: workflow-specific, generic default, fallback banner, safe placeholders
    6. MessageLog audit rows; audit write failure does not abort dispatch
"""

from unittest.mock import patch

from salesflow.models.message_log import MessageLog
from salesflow.models.records import Submission
from salesflow.services import message_templates as tmpl


def _submission(**kw):
    fields = {
        "territory": "Kushtia-01", "bazaar": "Kushtia Bazar", "area": "Kushtia",
        "reason": "Low demand", "business_unit": "ACL",
    }
    fields.update(kw.pop("fields", {}))
    return Submission(
        workflow_type=kw.pop("workflow_type", "DGR"),
        id=kw.pop("id", "DGR-20250101-001"),
        timestamp="2025-01-01 10:00:00",
        submitter_email=kw.pop("submitter_email", "asm1@example.com"),
        status="Pending",
        fields=fields,
        **kw,
    )


class TestNotifyChain:
    def test_one_message_per_recipient(self, services, chain_staff, messenger):
        definition = services.config.workflow("DGR")
        chain = services.chain_builder.build_chain("Kushtia-01", "ACL")
        report = services.dispatcher.notify(_submission(), "Created", chain, definition)
        assert report.sent == 5
        assert messenger.addresses == [e.contact_address for e in chain_staff.values()]
        assert all("DGR-20250101-001" in text for _, text in messenger.sent)

    def test_delivery_error_is_isolated(self, services, chain_staff, messenger):
        messenger.fail_for.add(chain_staff["ASM"].contact_address)
        definition = services.config.workflow("DGR")
        chain = services.chain_builder.build_chain("Kushtia-01", "ACL")
        report = services.dispatcher.notify(_submission(), "Created", chain, definition)
        assert (report.sent, report.failed) == (4, 1)
        assert "simulated provider failure" in report.errors[0]
        failed = MessageLog.query.filter_by(status="failed").one()
        assert failed.employee_id == "ASM001"

    def test_recipient_without_address_skipped(self, services, chain_staff, messenger):
        services.directory.update_employee("ZSM001", {"whatsapp_number": "", "contact_number": ""})
        definition = services.config.workflow("DGR")
        chain = services.chain_builder.build_chain("Kushtia-01", "ACL")
        report = services.dispatcher.notify(_submission(), "Created", chain, definition)
        assert (report.sent, report.skipped) == (4, 1)
        assert MessageLog.query.filter_by(status="skipped", employee_id="ZSM001").count() == 1

    def test_fallback_tier_carries_banner(self, services, chain_staff, messenger):
        definition = services.config.workflow("DGR")
        chain = services.chain_builder.build_chain("NoSuchTerritory", "ACL", roles=["ASM"])
        services.dispatcher.notify(
            _submission(fields={"territory": "NoSuchTerritory"}), "Created", chain, definition,
        )
        (_, text), = messenger.sent
        assert text.startswith("⚠️ *FALLBACK NOTIFICATION*")
        assert 'No specific ASM found for territory "NoSuchTerritory"' in text

    def test_audit_failure_does_not_abort(self, services, chain_staff, messenger):
        definition = services.config.workflow("DGR")
        chain = services.chain_builder.build_chain("Kushtia-01", "ACL")
        with patch("salesflow.services.dispatcher.MessageLog", side_effect=RuntimeError("db down")):
            report = services.dispatcher.notify(_submission(), "Created", chain, definition)
        assert report.sent == 5
        assert len(messenger.sent) == 5


class TestNotifySubmitter:
    def test_confirmation_goes_to_submitter(self, services, chain_staff, messenger):
        definition = services.config.workflow("DGR")
        report = services.dispatcher.notify_submitter(_submission(), "Created", definition)
        assert report.sent == 1
        (address, text), = messenger.sent
        assert address == chain_staff["ASM"].contact_address
        assert "Demand Generation Request Submitted" in text
        log = MessageLog.query.one()
        assert (log.audience, log.status) == ("submitter", "sent")

    def test_unknown_submitter_skipped(self, services, chain_staff, messenger):
        definition = services.config.workflow("DGR")
        report = services.dispatcher.notify_submitter(
            _submission(submitter_email="stranger@example.com"), "Created", definition,
        )
        assert report.skipped == 1
        assert messenger.sent == []


class TestTemplates:
    def test_specific_template_used_when_present(self):
        assert "Demand Generation Request Approved" in tmpl.template_for("DGR", "Approved", "submitter")

    def test_default_template_for_other_workflows(self, services):
        definition = services.config.workflow("ORD")
        sub = _submission(workflow_type="ORD", id="ORD-20250101-001",
                          fields={"order_type": "Cement", "quantity": "40"})
        ctx = tmpl.build_context(sub, definition)
        text = tmpl.render("ORD", "Approved", "chain", ctx)
        assert text.startswith("✅ *Order Approved*")
        assert "*Order Type:* Cement" in text
        assert "*Estimated Quantity:* 40" in text

    def test_submitter_context_uses_directory_name(self, services, chain_staff):
        definition = services.config.workflow("DGR")
        ctx = tmpl.build_context(_submission(), definition, chain_staff["ASM"])
        assert ctx["submitter"] == "Karim (ASM)"

    def test_missing_placeholder_renders_literally(self, services):
        definition = services.config.workflow("DGR")
        ctx = tmpl.build_context(_submission(), definition)
        del ctx["bazaar"]
        text = tmpl.render("DGR", "Created", "chain", ctx)
        assert "*Bazaar:* {bazaar}" in text

    def test_rejection_includes_reviewer_notes(self, services):
        definition = services.config.workflow("RPR")
        sub = _submission(workflow_type="RPR", id="RPR-20250101-001", reviewer_notes="Duplicate outlet",
                          fields={"location": "Main road"})
        text = tmpl.render("RPR", "Rejected", "submitter", tmpl.build_context(sub, definition))
        assert "*Reviewer Notes:* Duplicate outlet" in text
