"""
SalesFlow workflow service
Directory Blueprint.

Provides:
    - Employee add / read / update / deactivate
    - Location Map expansion
    - Notification chain preview for a territory + business unit
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from salesflow.core.workflow_config import LOCATION_ATTRIBUTES
from salesflow.services import get_services
from salesflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)

directory_bp = Blueprint("directory_bp", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  EMPLOYEES
# ═══════════════════════════════════════════════════════════════════════════

@directory_bp.route("/employees", methods=["POST"])
def add_employee():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.VALIDATION_REQUIRED, "JSON object body is required")
    employee = get_services().directory.add_employee(data)
    return jsonify(employee.to_dict()), 201


@directory_bp.route("/employees", methods=["GET"])
def list_employees():
    """Active employees; filter by ``role`` (repeatable) and ``business_unit``."""
    directory = get_services().directory
    roles = request.args.getlist("role")
    business_unit = request.args.get("business_unit")
    if roles:
        employees = directory.find_by_role(roles, business_unit=business_unit)
    else:
        employees = [
            e for e in directory.all_employees()
            if not business_unit or e.business_unit == business_unit
        ]
    return jsonify([e.to_dict() for e in employees])


@directory_bp.route("/employees/<employee_id>", methods=["GET"])
def get_employee(employee_id):
    return jsonify(get_services().directory.get_employee(employee_id).to_dict())


@directory_bp.route("/employees/<employee_id>", methods=["PATCH"])
def update_employee(employee_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return api_error(E.VALIDATION_REQUIRED, "JSON object with fields to update is required")
    employee = get_services().directory.update_employee(employee_id, data)
    return jsonify(employee.to_dict())


@directory_bp.route("/employees/<employee_id>/deactivate", methods=["POST"])
def deactivate_employee(employee_id):
    return jsonify(get_services().directory.deactivate_employee(employee_id).to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  LOCATIONS & ROUTING
# ═══════════════════════════════════════════════════════════════════════════

@directory_bp.route("/locations/expand", methods=["GET"])
def expand_location():
    """``?territory=Kushtia-01`` (or area, district, zone, bd_territory, cro_territory)."""
    partial = {k: v for k, v in request.args.items() if k in LOCATION_ATTRIBUTES}
    node = get_services().resolver.expand(partial)
    if node is None:
        return api_error(E.NOT_FOUND, "No Location Map row matches", details=partial)
    return jsonify(node.to_dict())


@directory_bp.route("/notification-chain", methods=["GET"])
def preview_chain():
    """Preview recipients: ``?location=Kushtia-01&business_unit=ACL[&workflow_type=DGR]``."""
    location = (request.args.get("location") or "").strip()
    if not location:
        return api_error(E.VALIDATION_REQUIRED, "location is required")
    services = get_services()
    roles = None
    vacancy_fallback = False
    workflow_type = request.args.get("workflow_type")
    if workflow_type:
        definition = services.config.workflow(workflow_type)
        roles = definition.chain_roles or None
        vacancy_fallback = definition.vacancy_fallback
    chain = services.chain_builder.build_chain(
        location, request.args.get("business_unit"), roles=roles, vacancy_fallback=vacancy_fallback,
    )
    return jsonify(chain.to_dict())
