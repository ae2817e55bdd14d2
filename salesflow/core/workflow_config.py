"""
Immutable routing configuration - roles, location requirements, workflows.

Built once by ``create_app`` (``default_workflow_config()``) and handed to
the directory, the chain builder and the workflow engine. Nothing mutates
it afterwards: the dataclasses are frozen and the lookup tables are
``MappingProxyType`` views.

Role table (employee-ID prefix, required location attribute):

    SR   Sales Representative       SR001…   territory
    ASM  Area Sales Manager         ASM001…  area
    ZSM  Zonal Sales Manager        ZSM001…  district
    BDO  Business Development Off.  BDO001…  bd_territory
    CRO  Credit Relationship Off.   CRO001…  cro_territory
    BDI  BD Incharge                BDI001…  (none; whole business unit)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from salesflow.core.exceptions import RecordNotFoundError, ValidationError

_TYPE_PREFIX_RE = re.compile(r"^[A-Z]{2,4}$")

# Fields every submission table must carry, whatever its domain columns.
SUBMISSION_BASE_FIELDS = (
    "timestamp",
    "id",
    "submitter_email",
    "status",
    "reviewer_notes",
    "decided_at",
    "notes",
)

# Employee attributes that can anchor a role or a chain tier.
LOCATION_ATTRIBUTES = (
    "territory",
    "area",
    "district",
    "zone",
    "bd_territory",
    "cro_territory",
)


class SubmissionStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


TERMINAL_STATUSES = frozenset({SubmissionStatus.APPROVED.value, SubmissionStatus.REJECTED.value})


def is_terminal(value: str | None) -> bool:
    """Exact, case-sensitive match against the two literal terminal values."""
    return value in TERMINAL_STATUSES


@dataclass(frozen=True)
class RoleDefinition:
    code: str
    title: str
    id_prefix: str
    start_number: int = 1
    location_attribute: str | None = None


@dataclass(frozen=True)
class WorkflowDefinition:
    """One record type: its table layout, form order and routing policy.

    ``columns`` is the ordered ``(header, field)`` list of the backing table;
    ``form_fields`` is the order of values in a FormSubmit event.
    """

    type: str
    title: str
    table: str
    columns: tuple[tuple[str, str], ...]
    form_fields: tuple[str, ...]
    required_fields: tuple[str, ...] = ("submitter_email",)
    location_field: str = "territory"
    business_unit_field: str | None = "business_unit"
    chain_roles: tuple[str, ...] = ()
    vacancy_fallback: bool = False

    def __post_init__(self):
        if not _TYPE_PREFIX_RE.match(self.type):
            raise ValueError(f"Workflow type {self.type!r} must be 2-4 upper-case letters")
        fields = self.fields
        missing = [f for f in SUBMISSION_BASE_FIELDS if f not in fields]
        if missing:
            raise ValueError(f"Workflow {self.type} is missing columns for {missing}")
        unknown = [f for f in self.form_fields if f not in fields]
        if unknown:
            raise ValueError(f"Workflow {self.type} form fields {unknown} have no column")

    @property
    def headers(self) -> list[str]:
        return [header for header, _ in self.columns]

    @property
    def fields(self) -> list[str]:
        return [name for _, name in self.columns]

    @property
    def domain_fields(self) -> list[str]:
        return [name for name in self.fields if name not in SUBMISSION_BASE_FIELDS]

    def column_index(self, field_name: str) -> int:
        return self.fields.index(field_name)

    @property
    def status_column(self) -> int:
        return self.column_index("status")


@dataclass(frozen=True)
class WorkflowConfig:
    roles: Mapping[str, RoleDefinition]
    workflows: Mapping[str, WorkflowDefinition]
    chain_role_order: tuple[str, ...] = ("SR", "ASM", "ZSM", "BDO", "CRO")
    employee_table: str = "Employees"
    location_table: str = "Location Map"
    _by_table: Mapping[str, WorkflowDefinition] = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "roles", MappingProxyType(dict(self.roles)))
        object.__setattr__(self, "workflows", MappingProxyType(dict(self.workflows)))
        object.__setattr__(
            self,
            "_by_table",
            MappingProxyType({wf.table: wf for wf in self.workflows.values()}),
        )
        for code in self.chain_role_order:
            if code not in self.roles:
                raise ValueError(f"Chain role {code} is not a configured role")

    def role(self, code: str) -> RoleDefinition:
        try:
            return self.roles[code]
        except KeyError:
            raise ValidationError(
                f"Unknown role: {code!r}",
                details={"role": f"must be one of {sorted(self.roles)}"},
            ) from None

    def required_attribute(self, role_code: str) -> str | None:
        role = self.roles.get(role_code)
        return role.location_attribute if role else None

    def workflow(self, workflow_type: str) -> WorkflowDefinition:
        try:
            return self.workflows[workflow_type]
        except KeyError:
            raise RecordNotFoundError("Workflow", workflow_type) from None

    def workflow_for_table(self, table: str) -> WorkflowDefinition | None:
        return self._by_table.get(table)


# ═══════════════════════════════════════════════════════════════════════════
#  Shipped configuration
# ═══════════════════════════════════════════════════════════════════════════

_ROLES = (
    RoleDefinition("SR", "Sales Representative", "SR", location_attribute="territory"),
    RoleDefinition("ASM", "Area Sales Manager", "ASM", location_attribute="area"),
    RoleDefinition("ZSM", "Zonal Sales Manager", "ZSM", location_attribute="district"),
    RoleDefinition("BDO", "Business Development Officer", "BDO", location_attribute="bd_territory"),
    RoleDefinition("CRO", "Credit Relationship Officer", "CRO", location_attribute="cro_territory"),
    RoleDefinition("BDI", "BD Incharge", "BDI"),
)

# Shared tail of every submission table.
_REVIEW_COLUMNS = (
    ("Status", "status"),
    ("Reviewer Notes", "reviewer_notes"),
    ("Decision Date", "decided_at"),
    ("Notes", "notes"),
)

_WORKFLOWS = (
    WorkflowDefinition(
        type="DGR",
        title="Demand Generation Request",
        table="Demand Generation Requests",
        columns=(
            ("Timestamp", "timestamp"),
            ("Request ID", "id"),
            ("Email Address", "submitter_email"),
            ("Territory", "territory"),
            ("Bazaar", "bazaar"),
            ("Area", "area"),
            ("Reason", "reason"),
            ("Business Unit", "business_unit"),
        ) + _REVIEW_COLUMNS,
        form_fields=("submitter_email", "territory", "bazaar", "area", "reason", "business_unit"),
        required_fields=("submitter_email", "territory", "reason", "business_unit"),
        chain_roles=("ASM", "BDO", "BDI"),
        vacancy_fallback=True,
    ),
    WorkflowDefinition(
        type="RPR",
        title="Retailer Point Request",
        table="Retailer Point Requests",
        columns=(
            ("Timestamp", "timestamp"),
            ("Request ID", "id"),
            ("Email Address", "submitter_email"),
            ("Territory", "territory"),
            ("Location", "location"),
            ("Company", "business_unit"),
        ) + _REVIEW_COLUMNS,
        form_fields=("submitter_email", "territory", "location", "business_unit"),
        required_fields=("submitter_email", "territory", "location"),
        chain_roles=("ASM",),
        vacancy_fallback=True,
    ),
    WorkflowDefinition(
        type="DIS",
        title="Dispute",
        table="Disputes",
        columns=(
            ("Timestamp", "timestamp"),
            ("Dispute ID", "id"),
            ("Order ID", "order_id"),
            ("Email Address", "submitter_email"),
            ("Territory", "territory"),
            ("Business Unit", "business_unit"),
            ("Reason", "reason"),
        ) + _REVIEW_COLUMNS,
        form_fields=("order_id", "submitter_email", "territory", "business_unit", "reason"),
        required_fields=("order_id", "submitter_email", "territory", "reason"),
        chain_roles=("SR", "ASM", "ZSM"),
    ),
    WorkflowDefinition(
        type="ORD",
        title="Order",
        table="Orders",
        columns=(
            ("Timestamp", "timestamp"),
            ("Order ID", "id"),
            ("Email Address", "submitter_email"),
            ("Potential Site ID", "site_id"),
            ("Order Type", "order_type"),
            ("Territory", "territory"),
            ("Business Unit", "business_unit"),
            ("Estimated Quantity", "quantity"),
            ("Delivery Timeline", "delivery_timeline"),
        ) + _REVIEW_COLUMNS,
        form_fields=(
            "submitter_email", "site_id", "order_type", "territory",
            "business_unit", "quantity", "delivery_timeline",
        ),
        required_fields=("submitter_email", "order_type", "territory", "quantity"),
        chain_roles=("SR", "ASM", "BDO"),
    ),
    WorkflowDefinition(
        type="RRG",
        title="Retailer Registration",
        table="Retailer Registrations",
        columns=(
            ("Timestamp", "timestamp"),
            ("Registration ID", "id"),
            ("Email Address", "submitter_email"),
            ("Retailer Name", "retailer_name"),
            ("Shop Name", "shop_name"),
            ("Contact Number", "contact_number"),
            ("Territory", "territory"),
            ("Bazaar", "bazaar"),
            ("Business Unit", "business_unit"),
        ) + _REVIEW_COLUMNS,
        form_fields=(
            "submitter_email", "retailer_name", "shop_name", "contact_number",
            "territory", "bazaar", "business_unit",
        ),
        required_fields=("submitter_email", "retailer_name", "contact_number", "territory"),
        chain_roles=("SR", "ASM", "ZSM", "BDO", "CRO"),
    ),
)


def default_workflow_config() -> WorkflowConfig:
    """Return the shipped role + workflow configuration."""
    return WorkflowConfig(
        roles={role.code: role for role in _ROLES},
        workflows={wf.type: wf for wf in _WORKFLOWS},
    )
