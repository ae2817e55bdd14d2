"""
Inbound workflow events.

Collaborators (form backends, table editors) push two kinds of event:

    {"kind": "form_submit", "workflow_type": "DGR", "values": ["a@x.com", "Kushtia-01", ...]}
    {"kind": "cell_edit", "table": "Demand Generation Requests",
     "row": 0, "column": 8, "value": "Approved", "old_value": "Pending"}

``parse_inbound_event`` validates the raw payload once and returns a typed
``FormSubmit`` or ``CellEdit``; the engine never touches raw dicts.
``row`` / ``column`` are 0-based data-row / column indices. A cell edit may
name ``workflow_type`` instead of (or as well as) ``table``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from salesflow.core.exceptions import MalformedEventError

KIND_FORM_SUBMIT = "form_submit"
KIND_CELL_EDIT = "cell_edit"


@dataclass(frozen=True)
class FormSubmit:
    workflow_type: str
    values: tuple[str, ...]


@dataclass(frozen=True)
class CellEdit:
    row: int
    column: int
    value: str
    table: str | None = None
    workflow_type: str | None = None
    old_value: str | None = None


InboundEvent = Union[FormSubmit, CellEdit]


def _require(payload: dict, key: str) -> Any:
    if key not in payload or payload[key] is None:
        raise MalformedEventError(f"Event is missing '{key}'", details={key: "required"})
    return payload[key]


def _as_index(payload: dict, key: str) -> int:
    value = _require(payload, key)
    # bool is an int subclass; a JSON true is not a row number.
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedEventError(f"'{key}' must be a non-negative integer", details={key: repr(value)})
    return value


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise MalformedEventError("Event values must be scalars", details={"value": repr(value)[:80]})
    return str(value)


def parse_inbound_event(payload: Any) -> InboundEvent:
    """Turn a raw JSON payload into a FormSubmit or CellEdit.

    Raises:
        MalformedEventError: payload is not an object, has an unknown kind,
            or misses / mistypes a required key.
    """
    if not isinstance(payload, dict):
        raise MalformedEventError("Event payload must be a JSON object")
    kind = payload.get("kind")

    if kind == KIND_FORM_SUBMIT:
        workflow_type = _require(payload, "workflow_type")
        values = _require(payload, "values")
        if not isinstance(workflow_type, str) or not workflow_type:
            raise MalformedEventError("'workflow_type' must be a non-empty string")
        if not isinstance(values, list):
            raise MalformedEventError("'values' must be a list", details={"values": type(values).__name__})
        return FormSubmit(workflow_type=workflow_type, values=tuple(_as_text(v) for v in values))

    if kind == KIND_CELL_EDIT:
        table = payload.get("table")
        workflow_type = payload.get("workflow_type")
        if not table and not workflow_type:
            raise MalformedEventError(
                "Cell edit must name a table or a workflow_type",
                details={"table": "required", "workflow_type": "required"},
            )
        if "value" not in payload:
            raise MalformedEventError("Event is missing 'value'", details={"value": "required"})
        old_value = payload.get("old_value")
        return CellEdit(
            row=_as_index(payload, "row"),
            column=_as_index(payload, "column"),
            value=_as_text(payload["value"]),
            table=str(table) if table else None,
            workflow_type=str(workflow_type) if workflow_type else None,
            old_value=_as_text(old_value) if old_value is not None else None,
        )

    raise MalformedEventError(
        f"Unknown event kind: {kind!r}",
        details={"kind": f"must be '{KIND_FORM_SUBMIT}' or '{KIND_CELL_EDIT}'"},
    )
