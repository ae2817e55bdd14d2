"""
SalesFlow workflow service
Named-field records built at the Store boundary.

Records:
    - Employee: one directory row
    - LocationNode: one Location Map row
    - Submission: one workflow record of any WorkflowDefinition

Rows arrive from the store as positional lists; ``from_row`` maps them to
named fields once, and ``to_row`` goes back. Services never index raw
columns.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from salesflow.core.workflow_config import WorkflowDefinition

EMPLOYEE_ACTIVE = "Active"
EMPLOYEE_INACTIVE = "Inactive"

EMPLOYEE_COLUMNS: tuple[tuple[str, str], ...] = (
    ("Employee ID", "id"),
    ("Employee Name", "name"),
    ("Role", "role"),
    ("Email", "email"),
    ("Contact Number", "contact_number"),
    ("WhatsApp Number", "whatsapp_number"),
    ("Status", "status"),
    ("Zone", "zone"),
    ("District", "district"),
    ("Area", "area"),
    ("Territory", "territory"),
    ("Bazaar", "bazaar"),
    ("Upazilla", "upazilla"),
    ("BD Territory", "bd_territory"),
    ("CRO Territory", "cro_territory"),
    ("Business Unit", "business_unit"),
    ("Hire Date", "hire_date"),
    ("Notes", "notes"),
)

LOCATION_COLUMNS: tuple[tuple[str, str], ...] = (
    ("Zone", "zone"),
    ("District", "district"),
    ("Area", "area"),
    ("Territory", "territory"),
    ("Bazaar", "bazaar"),
    ("Upazilla", "upazilla"),
    ("BD Territory", "bd_territory"),
    ("CRO Territory", "cro_territory"),
    ("Business Unit", "business_unit"),
    ("Status", "status"),
)


def cell_str(value: Any) -> str:
    """Store cells may hold numbers or None; the core compares trimmed strings."""
    if value is None:
        return ""
    return str(value).strip()


def _fields_from_row(columns, row) -> dict[str, str]:
    row = list(row or [])
    return {
        name: cell_str(row[i]) if i < len(row) else ""
        for i, (_, name) in enumerate(columns)
    }


def headers_of(columns) -> list[str]:
    return [header for header, _ in columns]


# ── Employee ─────────────────────────────────────────────────────────────────


@dataclass
class Employee:
    id: str = ""
    name: str = ""
    role: str = ""
    email: str = ""
    contact_number: str = ""
    whatsapp_number: str = ""
    status: str = EMPLOYEE_ACTIVE
    zone: str = ""
    district: str = ""
    area: str = ""
    territory: str = ""
    bazaar: str = ""
    upazilla: str = ""
    bd_territory: str = ""
    cro_territory: str = ""
    business_unit: str = ""
    hire_date: str = ""
    notes: str = ""
    row_index: int | None = field(default=None, compare=False, repr=False)

    @property
    def is_active(self) -> bool:
        return self.status == EMPLOYEE_ACTIVE

    @property
    def contact_address(self) -> str | None:
        """WhatsApp number when present, else the contact number."""
        return self.whatsapp_number or self.contact_number or None

    def location_value(self, attribute: str) -> str:
        return getattr(self, attribute, "") or ""

    @classmethod
    def from_row(cls, row, row_index: int | None = None) -> "Employee":
        return cls(**_fields_from_row(EMPLOYEE_COLUMNS, row), row_index=row_index)

    def to_row(self) -> list[str]:
        return [getattr(self, name) for _, name in EMPLOYEE_COLUMNS]

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("row_index", None)
        return data


# ── Location Map ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LocationNode:
    zone: str = ""
    district: str = ""
    area: str = ""
    territory: str = ""
    bazaar: str = ""
    upazilla: str = ""
    bd_territory: str = ""
    cro_territory: str = ""
    business_unit: str = ""
    status: str = EMPLOYEE_ACTIVE

    @property
    def is_active(self) -> bool:
        # Rows without a status predate the column and count as active.
        return self.status in ("", EMPLOYEE_ACTIVE)

    def value(self, attribute: str) -> str:
        return getattr(self, attribute, "") or ""

    @classmethod
    def from_row(cls, row) -> "LocationNode":
        return cls(**_fields_from_row(LOCATION_COLUMNS, row))

    def to_row(self) -> list[str]:
        return [getattr(self, name) for _, name in LOCATION_COLUMNS]

    def to_dict(self) -> dict:
        return asdict(self)


# ── Submission ───────────────────────────────────────────────────────────────


@dataclass
class Submission:
    """A workflow record. Domain columns live in ``fields`` keyed by field name."""

    workflow_type: str
    id: str = ""
    timestamp: str = ""
    submitter_email: str = ""
    status: str = ""
    reviewer_notes: str = ""
    decided_at: str = ""
    notes: str = ""
    fields: dict[str, str] = field(default_factory=dict)
    row_index: int | None = field(default=None, compare=False, repr=False)

    _BASE = ("id", "timestamp", "submitter_email", "status", "reviewer_notes", "decided_at", "notes")

    def get(self, name: str) -> str:
        if name in self._BASE:
            return getattr(self, name)
        return self.fields.get(name, "")

    @classmethod
    def from_row(cls, definition: WorkflowDefinition, row, row_index: int | None = None) -> "Submission":
        values = _fields_from_row(definition.columns, row)
        base = {name: values.pop(name) for name in cls._BASE}
        return cls(workflow_type=definition.type, fields=values, row_index=row_index, **base)

    def to_row(self, definition: WorkflowDefinition) -> list[str]:
        return [self.get(name) for name in definition.fields]

    def to_dict(self) -> dict:
        data = {name: getattr(self, name) for name in self._BASE}
        data["workflow_type"] = self.workflow_type
        data.update(self.fields)
        return data
