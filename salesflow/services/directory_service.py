"""
Employee directory - Employees table lookups and admin operations.

Lookups scan the active employees in table order (no index); the first
match wins for single-result lookups. Location matching is exact and
case-sensitive by contract: "Kushtia-01" never matches "kushtia-01".

Employees are never deleted. ``deactivate_employee`` flips the status and
every lookup except ``get_employee`` ignores non-Active rows.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Mapping

from salesflow.core.exceptions import RecordNotFoundError, ValidationError
from salesflow.core.workflow_config import WorkflowConfig
from salesflow.models.records import (
    EMPLOYEE_ACTIVE,
    EMPLOYEE_COLUMNS,
    EMPLOYEE_INACTIVE,
    Employee,
    cell_str,
    headers_of,
)
from salesflow.services.id_generator import next_employee_id
from salesflow.services.location_hierarchy import LocationHierarchyResolver
from salesflow.services.role_location import RoleLocationValidator
from salesflow.utils.phone import normalize_phone, same_number

logger = logging.getLogger(__name__)

_FIELD_NAMES = [name for _, name in EMPLOYEE_COLUMNS]
# Set by the directory itself, never by callers.
_PROTECTED_FIELDS = {"id"}
_PHONE_FIELDS = ("contact_number", "whatsapp_number")


def _as_role_set(roles: str | Iterable[str] | None) -> set[str] | None:
    if roles is None:
        return None
    if isinstance(roles, str):
        return {roles}
    return set(roles)


class DirectoryService:
    """Directory Store over the Employees table."""

    def __init__(
        self,
        store,
        config: WorkflowConfig,
        validator: RoleLocationValidator,
        resolver: LocationHierarchyResolver | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.validator = validator
        self.resolver = resolver
        self.table = config.employee_table

    def ensure_schema(self) -> None:
        self.store.ensure_headers(self.table, headers_of(EMPLOYEE_COLUMNS))

    # ── Reads ────────────────────────────────────────────────────────────────

    def all_employees(self, include_inactive: bool = False) -> list[Employee]:
        employees = [
            Employee.from_row(row, row_index=i)
            for i, row in enumerate(self.store.read(self.table))
        ]
        if include_inactive:
            return employees
        return [e for e in employees if e.is_active]

    def find_by_id(self, employee_id: str) -> Employee | None:
        employee_id = cell_str(employee_id)
        for employee in self.all_employees():
            if employee.id == employee_id:
                return employee
        return None

    def get_employee(self, employee_id: str) -> Employee:
        """Return the employee regardless of status, or raise RecordNotFoundError."""
        employee_id = cell_str(employee_id)
        for employee in self.all_employees(include_inactive=True):
            if employee.id == employee_id:
                return employee
        raise RecordNotFoundError("Employee", employee_id)

    def find_by_email(self, email: str) -> Employee | None:
        email = cell_str(email).lower()
        if not email:
            return None
        for employee in self.all_employees():
            if employee.email.lower() == email:
                return employee
        return None

    def find_by_whatsapp(self, number: str) -> Employee | None:
        """Match on WhatsApp number first, then on contact number."""
        if not normalize_phone(number):
            return None
        employees = self.all_employees()
        for employee in employees:
            if same_number(employee.whatsapp_number, number):
                return employee
        for employee in employees:
            if same_number(employee.contact_number, number):
                return employee
        return None

    def find_by_role(
        self,
        roles: str | Iterable[str],
        business_unit: str | None = None,
    ) -> list[Employee]:
        wanted = _as_role_set(roles)
        business_unit = cell_str(business_unit)
        return [
            e for e in self.all_employees()
            if e.role in wanted and (not business_unit or e.business_unit == business_unit)
        ]

    def find_by_location_attribute(
        self,
        attribute: str,
        value: str,
        roles: str | Iterable[str] | None = None,
        business_unit: str | None = None,
    ) -> list[Employee]:
        """Active employees whose *attribute* equals *value* exactly, in table order."""
        if attribute not in _FIELD_NAMES:
            raise ValidationError(f"Unknown employee attribute: {attribute!r}")
        value = cell_str(value)
        if not value:
            return []
        wanted = _as_role_set(roles)
        business_unit = cell_str(business_unit)
        return [
            e for e in self.all_employees()
            if e.location_value(attribute) == value
            and (wanted is None or e.role in wanted)
            and (not business_unit or e.business_unit == business_unit)
        ]

    # ── Writes ───────────────────────────────────────────────────────────────

    def _fill_enclosing(self, employee: Employee) -> list[str]:
        """Fill blank coarser levels from the Location Map; returns filled fields."""
        if self.resolver is None:
            return []
        attribute = self.validator.required_attribute(employee.role)
        if attribute is None:
            return []
        filled = []
        for level, value in self.resolver.enclosing(attribute, employee.location_value(attribute)).items():
            if not getattr(employee, level):
                setattr(employee, level, value)
                filled.append(level)
        return filled

    def add_employee(self, data: Mapping[str, Any]) -> Employee:
        """Validate, assign the next ID for the role and append the employee.

        Raises:
            ValidationError: name or role missing, or role unknown.
            MissingLocationError: role's required location attribute is blank.
        """
        name = cell_str(data.get("name"))
        role_code = cell_str(data.get("role"))
        errors = {}
        if not name:
            errors["name"] = "required"
        if not role_code:
            errors["role"] = "required"
        if errors:
            raise ValidationError("Employee name and role are required", details=errors)
        role = self.config.role(role_code)

        values = {k: cell_str(v) for k, v in data.items() if k in _FIELD_NAMES and k not in _PROTECTED_FIELDS}
        values.setdefault("status", EMPLOYEE_ACTIVE)
        if not values["status"]:
            values["status"] = EMPLOYEE_ACTIVE
        employee = Employee(**values)
        employee.role = role.code
        self.validator.validate(role.code, employee)

        for phone_field in _PHONE_FIELDS:
            setattr(employee, phone_field, normalize_phone(getattr(employee, phone_field)))
        if not employee.hire_date:
            employee.hire_date = date.today().isoformat()
        self._fill_enclosing(employee)

        self.ensure_schema()
        existing = [e.id for e in self.all_employees(include_inactive=True)]
        employee.id = next_employee_id(existing, role.id_prefix, role.start_number)
        employee.row_index = self.store.append(self.table, employee.to_row())
        logger.info(
            "Added employee %s (%s) %s", employee.id, employee.role, employee.name,
            extra={"employee_id": employee.id},
        )
        return employee

    def _write_fields(self, employee: Employee, names: Iterable[str]) -> None:
        self.store.write_cells(
            self.table, employee.row_index,
            {_FIELD_NAMES.index(name): getattr(employee, name) for name in names},
        )

    def update_employee(self, employee_id: str, changes: Mapping[str, Any]) -> Employee:
        """Apply *changes* and re-validate the role-location contract before writing."""
        employee = self.get_employee(employee_id)
        unknown = [k for k in changes if k not in _FIELD_NAMES or k in _PROTECTED_FIELDS]
        if unknown:
            raise ValidationError(
                f"Cannot update field(s): {', '.join(sorted(unknown))}",
                details={k: "not updatable" for k in unknown},
            )
        changed = []
        for name, value in changes.items():
            value = cell_str(value)
            if name in _PHONE_FIELDS:
                value = normalize_phone(value)
            if getattr(employee, name) != value:
                setattr(employee, name, value)
                changed.append(name)
        if "role" in changed:
            employee.role = self.config.role(employee.role).code
        self.validator.validate(employee.role, employee)
        changed.extend(f for f in self._fill_enclosing(employee) if f not in changed)
        if changed:
            self._write_fields(employee, changed)
            logger.info("Updated employee %s: %s", employee.id, ", ".join(changed),
                        extra={"employee_id": employee.id})
        return employee

    def deactivate_employee(self, employee_id: str) -> Employee:
        employee = self.get_employee(employee_id)
        if employee.status != EMPLOYEE_INACTIVE:
            employee.status = EMPLOYEE_INACTIVE
            self._write_fields(employee, ["status"])
            logger.info("Deactivated employee %s", employee.id, extra={"employee_id": employee.id})
        return employee

    def backfill_locations(self) -> int:
        """Fill blank hierarchy fields of every employee from the Location Map.

        Returns the number of employees updated. Employees whose anchor
        attribute is blank or unresolvable are left untouched.
        """
        updated = 0
        for employee in self.all_employees(include_inactive=True):
            filled = self._fill_enclosing(employee)
            if filled:
                self._write_fields(employee, filled)
                updated += 1
                logger.debug("Backfilled %s for %s", filled, employee.id)
        logger.info("Location backfill updated %d employee(s)", updated)
        return updated
