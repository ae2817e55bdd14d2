"""
Notification Chain Builder.

Turns a triggering territory + business unit into the ordered tiers of
employees to notify:

    1. Expand the territory through the Location Map.
    2. For each role (default order SR, ASM, ZSM, BDO, CRO) take the node's
       value for that role's anchor attribute and collect the active
       employees of the role holding that value, filtered by business unit.
       Roles without an anchor attribute (BD Incharge) take every active
       holder of the role in the business unit.

Edge policy:
  - Territory not in the Location Map → the whole chain becomes a broadcast
    to every active employee of the requested roles in the business unit
    (or of any business unit when that set is empty), flagged ``fallback``.
  - Territory resolved but nobody holds a role's value (vacancy) → the tier
    is skipped and logged. Workflows that opt into ``vacancy_fallback``
    instead broadcast that single tier within the business unit.
  - The same person appearing in two tiers is kept twice.

Chains are computed per event and never stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, NamedTuple, Sequence

from salesflow.core.workflow_config import WorkflowConfig
from salesflow.models.records import Employee, LocationNode, cell_str
from salesflow.services.directory_service import DirectoryService
from salesflow.services.location_hierarchy import LocationHierarchyResolver
from salesflow.services.role_location import RoleLocationValidator

logger = logging.getLogger(__name__)


class ChainEntry(NamedTuple):
    role: str
    employee: Employee | None
    address: str | None


@dataclass(frozen=True)
class ChainTier:
    role: str
    recipients: tuple[Employee, ...]
    fallback: bool = False
    attribute: str | None = None
    value: str | None = None

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "attribute": self.attribute,
            "value": self.value,
            "fallback": self.fallback,
            "recipients": [
                {"id": e.id, "name": e.name, "address": e.contact_address} for e in self.recipients
            ],
        }


@dataclass(frozen=True)
class NotificationChain:
    trigger_location: str
    business_unit: str
    tiers: tuple[ChainTier, ...] = ()
    node: LocationNode | None = None
    fallback: bool = False
    vacant_roles: tuple[str, ...] = field(default=())

    def __iter__(self) -> Iterator[ChainTier]:
        return iter(self.tiers)

    def __len__(self) -> int:
        return len(self.tiers)

    @property
    def roles(self) -> list[str]:
        return [tier.role for tier in self.tiers]

    def entries(self) -> list[ChainEntry]:
        """Flatten to (role, employee, address) in tier order, duplicates kept."""
        return [
            ChainEntry(tier.role, employee, employee.contact_address)
            for tier in self.tiers
            for employee in tier.recipients
        ]

    def to_dict(self) -> dict:
        return {
            "trigger_location": self.trigger_location,
            "business_unit": self.business_unit,
            "fallback": self.fallback,
            "vacant_roles": list(self.vacant_roles),
            "node": self.node.to_dict() if self.node else None,
            "tiers": [tier.to_dict() for tier in self.tiers],
        }


class NotificationChainBuilder:

    def __init__(
        self,
        config: WorkflowConfig,
        directory: DirectoryService,
        resolver: LocationHierarchyResolver,
        validator: RoleLocationValidator,
    ) -> None:
        self.config = config
        self.directory = directory
        self.resolver = resolver
        self.validator = validator

    def build_chain(
        self,
        trigger_location: str,
        business_unit: str | None,
        roles: Sequence[str] | None = None,
        vacancy_fallback: bool = False,
    ) -> NotificationChain:
        roles = tuple(roles) if roles else self.config.chain_role_order
        trigger_location = cell_str(trigger_location)
        business_unit = cell_str(business_unit)

        node = self.resolver.expand_territory(trigger_location)
        if node is None:
            return self._broadcast(trigger_location, business_unit, roles)

        tiers = []
        vacant = []
        for role in roles:
            attribute = self.validator.required_attribute(role)
            if attribute is None:
                # Unanchored roles (BD Incharge) cover a whole business unit.
                attribute, value = "business_unit", business_unit
                recipients = self.directory.find_by_role(role, business_unit=business_unit) if business_unit else []
            else:
                value = node.value(attribute)
                recipients = self.directory.find_by_location_attribute(
                    attribute, value, roles=role, business_unit=business_unit,
                )
            if recipients:
                tiers.append(ChainTier(role, tuple(recipients), False, attribute, value))
                continue

            vacant.append(role)
            if vacancy_fallback:
                backup = self.directory.find_by_role(role, business_unit=business_unit)
                if backup:
                    logger.warning(
                        "No %s for %s=%r; notifying all %d %s in business unit %r",
                        role, attribute, value, len(backup), role, business_unit,
                    )
                    tiers.append(ChainTier(role, tuple(backup), True, attribute, value))
                    continue
            logger.info("Vacant tier skipped: no active %s with %s=%r (bu=%r)",
                        role, attribute, value, business_unit)

        return NotificationChain(
            trigger_location=trigger_location,
            business_unit=business_unit,
            tiers=tuple(tiers),
            node=node,
            fallback=False,
            vacant_roles=tuple(vacant),
        )

    def _broadcast(self, trigger_location: str, business_unit: str, roles: Sequence[str]) -> NotificationChain:
        logger.warning(
            "Territory %r not in Location Map; broadcasting to %s in business unit %r",
            trigger_location, ", ".join(roles), business_unit,
        )
        tiers = self._broadcast_tiers(roles, business_unit)
        if not tiers and business_unit:
            logger.warning("Nobody in business unit %r for %s; broadcasting across all units",
                           business_unit, ", ".join(roles))
            tiers = self._broadcast_tiers(roles, None)
        return NotificationChain(
            trigger_location=trigger_location,
            business_unit=business_unit,
            tiers=tuple(tiers),
            node=None,
            fallback=True,
        )

    def _broadcast_tiers(self, roles: Sequence[str], business_unit: str | None) -> list[ChainTier]:
        tiers = []
        for role in roles:
            recipients = self.directory.find_by_role(role, business_unit=business_unit)
            if recipients:
                tiers.append(ChainTier(role, tuple(recipients), True))
        return tiers
