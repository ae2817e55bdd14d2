"""
Location Hierarchy Resolver - Location Map lookups.

The Location Map is a flat table; every row is a leaf territory with its
enclosing area / district / zone, its bazaar and upazilla, and its place in
the two parallel partitions (BD Territory, CRO Territory) plus the
business unit:

    Zone    District   Area     Territory   ...  BD Territory  CRO Territory  Business Unit
    Khulna  Jhenaidah  Kushtia  Kushtia-01  ...  BD1           CRO1           ACL

``expand`` starts from any one of the six routing levels and returns the
first active row whose column equals the value exactly. A miss returns
``None``: callers treat it as "hierarchy unknown" and fall back, never as
an error.
"""

from __future__ import annotations

import logging
from typing import Mapping

from salesflow.core.exceptions import ValidationError
from salesflow.core.workflow_config import LOCATION_ATTRIBUTES
from salesflow.models.records import LOCATION_COLUMNS, LocationNode, cell_str, headers_of

logger = logging.getLogger(__name__)

# Strictly coarser levels that a resolved value pins down. A territory fixes
# its whole branch and both parallel partitions; an area only its ancestors.
_ENCLOSING: dict[str, tuple[str, ...]] = {
    "territory": ("area", "district", "zone", "bd_territory", "cro_territory"),
    "area": ("district", "zone"),
    "district": ("zone",),
    "zone": (),
    "bd_territory": (),
    "cro_territory": (),
}


class LocationHierarchyResolver:
    """Expands a partial location into a full LocationNode."""

    def __init__(self, store, table: str = "Location Map") -> None:
        self.store = store
        self.table = table

    def ensure_schema(self) -> None:
        self.store.ensure_headers(self.table, headers_of(LOCATION_COLUMNS))

    def nodes(self) -> list[LocationNode]:
        """All Location Map rows in table order, inactive ones included."""
        return [LocationNode.from_row(row) for row in self.store.read(self.table)]

    def add_node(self, node: LocationNode) -> int:
        self.ensure_schema()
        return self.store.append(self.table, node.to_row())

    # ── Resolution ───────────────────────────────────────────────────────────

    @staticmethod
    def _single_level(partial: Mapping[str, str]) -> tuple[str, str]:
        unknown = [k for k in partial if k not in LOCATION_ATTRIBUTES]
        if unknown:
            raise ValidationError(
                f"Unknown location level(s): {', '.join(sorted(unknown))}",
                details={"levels": f"must be one of {list(LOCATION_ATTRIBUTES)}"},
            )
        given = [(k, cell_str(v)) for k, v in partial.items() if cell_str(v)]
        if len(given) != 1:
            raise ValidationError(
                "Exactly one location level must be given",
                details={"given": [k for k, _ in given]},
            )
        return given[0]

    def expand(self, partial: Mapping[str, str] | None = None, **levels) -> LocationNode | None:
        """Return the first active node matching the single given level.

        Accepts a mapping or keywords: ``expand(territory="Kushtia-01")``.
        Matching is exact and case-sensitive. Returns None when no row matches.
        """
        level, value = self._single_level({**(partial or {}), **levels})
        for node in self.nodes():
            if not node.is_active:
                continue
            if node.value(level) == value:
                return node
        logger.debug("No Location Map row for %s=%r", level, value)
        return None

    def expand_territory(self, territory: str) -> LocationNode | None:
        if not cell_str(territory):
            return None
        return self.expand(territory=territory)

    def enclosing(self, level: str, value: str) -> dict[str, str]:
        """Coarser levels implied by *level* = *value*; empty when unresolved."""
        if level not in _ENCLOSING or not cell_str(value):
            return {}
        node = self.expand({level: value})
        if node is None:
            return {}
        return {attr: node.value(attr) for attr in _ENCLOSING[level] if node.value(attr)}
