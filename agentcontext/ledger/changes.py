"""
Net-change folding for the dashboard change log.

Field-level updates are folded per (target, field) so the log holds the net
transition since the last consolidation:

- A->B then B->A on the same target+field cancels (net zero)
- A->B then B->C on the same target+field folds to A->C

Creates, deletes and field-less updates are one-shot events and are always
prepended unchanged.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Iterable

from ..models import ChangeAction, DashboardChange, EntityKind, FieldChange, FieldValue, LedgerState
from ..util import utc_now

_TARGET_PREFIX = re.compile(r"^(state|knowledge|core)/")
_TARGET_SUFFIX = re.compile(r"\.md$")


def values_equal(a: FieldValue, b: FieldValue) -> bool:
    """Equality that compares lists element by element."""
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def format_value(value: FieldValue) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    return str(value)


def display_name(target: str) -> str:
    return _TARGET_SUFFIX.sub("", _TARGET_PREFIX.sub("", target))


def build_field_summary(entity: EntityKind | str, target: str, fields: Iterable[FieldChange]) -> str:
    kind = entity.value if isinstance(entity, EntityKind) else str(entity)
    transitions = [f"{fc.field} {format_value(fc.from_value)} -> {format_value(fc.to_value)}" for fc in fields]
    return f"{kind} '{display_name(target)}': {', '.join(transitions)}"


def _regenerate(change: DashboardChange) -> None:
    fields = change.fields or []
    change.field = ", ".join(fc.field for fc in fields)
    change.summary = build_field_summary(change.entity, change.target, fields)


def _index(change_log: list[DashboardChange]) -> dict[tuple[str, str], DashboardChange]:
    """Map (target, field) to the first (newest) entry carrying it."""
    index: dict[tuple[str, str], DashboardChange] = {}
    for entry in change_log:
        for fc in entry.fields or []:
            index.setdefault((entry.target, fc.field), entry)
    return index


def fold_change(change_log: list[DashboardChange], incoming: DashboardChange) -> DashboardChange | None:
    """
    Fold a field-level update into the log, in place.

    Each incoming field either cancels against, extends, or (if no entry
    tracks that target+field yet) is collected into a new entry prepended
    to the log.

    Returns:
        The new entry, or None if every field folded into existing entries
    """
    index = _index(change_log)
    remaining: list[FieldChange] = []

    for fc in incoming.fields or []:
        key = (incoming.target, fc.field)
        existing = index.get(key)
        if existing is None:
            remaining.append(fc)
            continue

        fields = existing.fields or []
        ef = next(f for f in fields if f.field == fc.field)
        if values_equal(fc.to_value, ef.from_value):
            fields.remove(ef)
            del index[key]
            if not fields:
                change_log.remove(existing)
            else:
                _regenerate(existing)
        else:
            ef.to_value = fc.to_value
            _regenerate(existing)

    if not remaining:
        return None

    incoming.fields = remaining
    _regenerate(incoming)
    change_log.insert(0, incoming)
    return incoming


def record_change(
    state: LedgerState,
    entity: EntityKind | str,
    action: ChangeAction | str,
    target: str,
    *,
    fields: list[FieldChange] | None = None,
    summary: str | None = None,
    now: datetime | None = None,
) -> DashboardChange | None:
    """
    Record a dashboard mutation in the change log.

    Returns:
        The entry that was added, or None if the update folded away entirely
    """
    entity = EntityKind(entity)
    action = ChangeAction(action)
    target = (target or "").strip()
    if not target:
        raise ValueError("Change target is required.")

    change = DashboardChange(
        timestamp=now or utc_now(),
        entity=entity,
        action=action,
        target=target,
        summary=summary or "",
        fields=list(fields) if fields else None,
    )

    if action is ChangeAction.UPDATE and change.fields:
        return fold_change(state.change_log, change)

    if change.fields:
        _regenerate(change)
        if summary:
            change.summary = summary
    elif not change.summary:
        change.summary = f"{action.value.capitalize()}d {entity.value} '{display_name(target)}'"
    state.change_log.insert(0, change)
    return change
