"""
Sequential ID generator.

Generates:
  - Employee IDs:    {ROLE_PREFIX}{seq:03d}              (e.g. SR001, ASM012)
  - Submission IDs:  {TYPE}-{YYYYMMDD}-{seq:03d}         (e.g. DGR-20250101-001)

The next sequence is max(existing) + 1 over the IDs already in the table,
so gaps left by hand edits never produce duplicates. Submission sequences
restart every day per type prefix.

Read-compute-append is not atomic: two submissions created at the same
instant can compute the same ID. The store offers no compare-and-swap, so
the race is accepted rather than hidden behind a retry.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Iterable

from salesflow.core.exceptions import ValidationError

_MAX_SEQ = 999


def _next_seq(ids: Iterable[str], pattern: re.Pattern, start: int) -> int:
    highest = 0
    for value in ids:
        m = pattern.match(str(value or ""))
        if m:
            highest = max(highest, int(m.group(1)))
    return highest + 1 if highest > 0 else start


def next_employee_id(existing_ids: Iterable[str], prefix: str, start_number: int = 1) -> str:
    """Next employee ID for *prefix*: SR001, SR002, ..."""
    pattern = re.compile(rf"^{re.escape(prefix)}(\d{{3}})$")
    seq = _next_seq(existing_ids, pattern, start_number)
    if seq > _MAX_SEQ:
        raise ValidationError(f"Employee ID sequence exhausted for prefix {prefix}")
    return f"{prefix}{seq:03d}"


def next_submission_id(existing_ids: Iterable[str], type_prefix: str, day: date | datetime) -> str:
    """Next submission ID for *type_prefix* on *day*: DGR-20250101-001, ..."""
    day_str = day.strftime("%Y%m%d")
    pattern = re.compile(rf"^{re.escape(type_prefix)}-{day_str}-(\d{{3}})$")
    seq = _next_seq(existing_ids, pattern, 1)
    if seq > _MAX_SEQ:
        raise ValidationError(f"Daily ID sequence exhausted for {type_prefix} on {day_str}")
    return f"{type_prefix}-{day_str}-{seq:03d}"
