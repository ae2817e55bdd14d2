"""
Role-location contract.

Every role that routes by geography is anchored on exactly one employee
attribute (SR → territory, ASM → area, ZSM → district, BDO → bd_territory,
CRO → cro_territory). An employee of that role cannot be stored without it,
and a chain tier for that role can only be resolved through it.
"""

from __future__ import annotations

from typing import Any, Mapping

from salesflow.core.exceptions import MissingLocationError
from salesflow.core.workflow_config import WorkflowConfig


class RoleLocationValidator:

    def __init__(self, config: WorkflowConfig) -> None:
        self.config = config

    def required_attribute(self, role: str) -> str | None:
        """Attribute *role* is anchored on; None for unknown or unanchored roles."""
        return self.config.required_attribute(role)

    def can_resolve(self, role: str) -> bool:
        return self.required_attribute(role) is not None

    def validate(self, role: str, location: Mapping[str, Any] | Any) -> None:
        """Raise MissingLocationError when *location* lacks the role's attribute.

        *location* may be a mapping or any object exposing the attributes
        (an Employee). Roles without a requirement always pass.
        """
        attribute = self.required_attribute(role)
        if attribute is None:
            return
        if isinstance(location, Mapping):
            value = location.get(attribute)
        else:
            value = getattr(location, attribute, None)
        if value is None or not str(value).strip():
            raise MissingLocationError(role, attribute)
