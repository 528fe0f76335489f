"""
Data model for the session debt ledger.

The ledger is one aggregate (LedgerState) persisted as a single JSON object.
History entries live in a separate append-only array file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple, Union

from .util import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

FieldValue = Union[str, int, float, bool, list, None]


class TranscriptStats(NamedTuple):
    """Activity counts produced by the transcript analyzer."""

    change_count: int = 0
    tool_count: int = 0


class EntityKind(str, Enum):
    """Kinds of dashboard resources whose edits are tracked."""

    TASK = "task"
    CORE = "core"
    KNOWLEDGE = "knowledge"
    FEATURE = "feature"
    SLEEP = "sleep"


class ChangeAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def _ts(value: datetime | None) -> str | None:
    return format_timestamp(value) if value is not None else None


def _opt_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _opt_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


@dataclass
class SessionRecord:
    """One agent session, keyed by session_id."""

    session_id: str
    transcript_path: str | None = None
    stopped_at: datetime | None = None  # None = still active
    last_message: str | None = None
    change_count: int | None = None
    tool_count: int | None = None
    score: int | None = None  # None = not yet analyzed

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "transcript_path": self.transcript_path,
            "stopped_at": _ts(self.stopped_at),
            "last_assistant_message": self.last_message,
            "change_count": self.change_count,
            "tool_count": self.tool_count,
            "score": self.score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionRecord":
        session_id = data.get("session_id")
        if not isinstance(session_id, str) or not session_id:
            raise ValueError("session_id is required")
        return cls(
            session_id=session_id,
            transcript_path=_opt_str(data.get("transcript_path")),
            stopped_at=parse_timestamp(data.get("stopped_at")),
            last_message=_opt_str(data.get("last_assistant_message")),
            change_count=_opt_int(data.get("change_count")),
            tool_count=_opt_int(data.get("tool_count")),
            score=_opt_int(data.get("score")),
        )


@dataclass
class Bookmark:
    """A salient moment tagged for the next consolidation."""

    id: str
    message: str
    salience: int
    created_at: datetime
    session_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "salience": self.salience,
            "created_at": format_timestamp(self.created_at),
            "session_id": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Bookmark":
        created_at = parse_timestamp(data.get("created_at"))
        if created_at is None:
            raise ValueError("bookmark created_at is required")
        salience = _opt_int(data.get("salience"))
        return cls(
            id=str(data["id"]),
            message=str(data.get("message", "")),
            salience=salience if salience in (1, 2, 3) else 2,
            created_at=created_at,
            session_id=_opt_str(data.get("session_id")),
        )


@dataclass
class Trigger:
    """A keyword-gated reminder that expires after max_fires firings."""

    id: str
    when: str
    remind: str
    created_at: datetime
    source: str | None = None
    fired_count: int = 0
    max_fires: int = 3

    @property
    def expired(self) -> bool:
        return self.fired_count >= self.max_fires

    @property
    def fires_left(self) -> int:
        return max(0, self.max_fires - self.fired_count)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "when": self.when,
            "remind": self.remind,
            "source": self.source,
            "created_at": format_timestamp(self.created_at),
            "fired_count": self.fired_count,
            "max_fires": self.max_fires,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Trigger":
        created_at = parse_timestamp(data.get("created_at"))
        if created_at is None:
            raise ValueError("trigger created_at is required")
        max_fires = _opt_int(data.get("max_fires")) or 1
        fired = _opt_int(data.get("fired_count")) or 0
        return cls(
            id=str(data["id"]),
            when=str(data["when"]),
            remind=str(data["remind"]),
            created_at=created_at,
            source=_opt_str(data.get("source")),
            fired_count=min(max(fired, 0), max(max_fires, 1)),
            max_fires=max(max_fires, 1),
        )


@dataclass
class AccessRecord:
    last_accessed: str
    count: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"last_accessed": self.last_accessed, "count": self.count}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AccessRecord":
        return cls(
            last_accessed=str(data["last_accessed"]),
            count=max(_opt_int(data.get("count")) or 1, 1),
        )


@dataclass
class FieldChange:
    """A single field transition on a tracked resource."""

    field: str
    from_value: FieldValue = None
    to_value: FieldValue = None

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "from": self.from_value, "to": self.to_value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldChange":
        return cls(field=str(data["field"]), from_value=data.get("from"), to_value=data.get("to"))


@dataclass
class DashboardChange:
    """
    One entry of the folded change log.

    For update entries with fields, `field` and `summary` are derived from
    `fields` and regenerated on every fold.
    """

    timestamp: datetime
    entity: EntityKind
    action: ChangeAction
    target: str
    summary: str
    fields: list[FieldChange] | None = None
    field: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "timestamp": format_timestamp(self.timestamp),
            "entity": self.entity.value,
            "action": self.action.value,
            "target": self.target,
        }
        if self.field is not None:
            d["field"] = self.field
        if self.fields is not None:
            d["fields"] = [fc.to_dict() for fc in self.fields]
        d["summary"] = self.summary
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DashboardChange":
        timestamp = parse_timestamp(data.get("timestamp"))
        if timestamp is None:
            raise ValueError("change timestamp is required")
        raw_fields = data.get("fields")
        fields = None
        if isinstance(raw_fields, list):
            fields = [FieldChange.from_dict(f) for f in raw_fields if isinstance(f, dict)]
        return cls(
            timestamp=timestamp,
            entity=EntityKind(data["entity"]),
            action=ChangeAction(data["action"]),
            target=str(data["target"]),
            summary=str(data.get("summary", "")),
            fields=fields,
            field=_opt_str(data.get("field")),
        )


@dataclass
class LastConsolidation:
    at: str | None = None  # YYYY-MM-DD
    summary: str | None = None


@dataclass
class LedgerState:
    """The whole per-project ledger, loaded and stored as one document."""

    debt: int = 0
    last_consolidation: LastConsolidation = field(default_factory=LastConsolidation)
    consolidation_epoch: datetime | None = None
    sessions: list[SessionRecord] = field(default_factory=list)
    bookmarks: list[Bookmark] = field(default_factory=list)
    triggers: list[Trigger] = field(default_factory=list)
    knowledge_access: dict[str, AccessRecord] = field(default_factory=dict)
    change_log: list[DashboardChange] = field(default_factory=list)

    @property
    def consolidating(self) -> bool:
        return self.consolidation_epoch is not None

    def find_session(self, session_id: str) -> SessionRecord | None:
        for s in self.sessions:
            if s.session_id == session_id:
                return s
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with a fixed key order so diffs stay readable."""
        return {
            "debt": self.debt,
            "last_sleep": self.last_consolidation.at,
            "last_sleep_summary": self.last_consolidation.summary,
            "sleep_started_at": _ts(self.consolidation_epoch),
            "sessions": [s.to_dict() for s in self.sessions],
            "bookmarks": [b.to_dict() for b in self.bookmarks],
            "triggers": [t.to_dict() for t in self.triggers],
            "knowledge_access": {k: v.to_dict() for k, v in self.knowledge_access.items()},
            "dashboard_changes": [c.to_dict() for c in self.change_log],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LedgerState":
        """
        Build state from a persisted document.

        Missing keys take defaults, unknown keys are ignored, and records that
        fail to parse are skipped with a warning.
        """
        debt = _opt_int(data.get("debt")) or 0

        access: dict[str, AccessRecord] = {}
        raw_access = data.get("knowledge_access")
        if isinstance(raw_access, dict):
            for slug, raw in raw_access.items():
                rec = _parse_record(AccessRecord, raw, "knowledge_access")
                if rec is not None:
                    access[str(slug)] = rec

        return cls(
            debt=max(debt, 0),
            last_consolidation=LastConsolidation(
                at=_opt_str(data.get("last_sleep")),
                summary=_opt_str(data.get("last_sleep_summary")),
            ),
            consolidation_epoch=parse_timestamp(data.get("sleep_started_at")),
            sessions=_parse_list(SessionRecord, data.get("sessions"), "sessions"),
            bookmarks=_parse_list(Bookmark, data.get("bookmarks"), "bookmarks"),
            triggers=_parse_list(Trigger, data.get("triggers"), "triggers"),
            knowledge_access=access,
            change_log=_parse_list(DashboardChange, data.get("dashboard_changes"), "dashboard_changes"),
        )


@dataclass
class HistoryEntry:
    """One completed consolidation. Written once, never modified."""

    date: str
    summary: str
    debt_before: int
    debt_after: int
    sessions_processed: int
    bookmarks_processed: int
    consolidated_at: datetime | None = None
    session_ids: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "date": self.date,
            "consolidated_at": _ts(self.consolidated_at),
            "summary": self.summary,
            "debt_before": self.debt_before,
            "debt_after": self.debt_after,
            "sessions_processed": self.sessions_processed,
            "bookmarks_processed": self.bookmarks_processed,
        }
        if self.session_ids is not None:
            d["session_ids"] = list(self.session_ids)
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        ids = data.get("session_ids")
        return cls(
            date=str(data["date"]),
            summary=str(data.get("summary", "")),
            debt_before=_opt_int(data.get("debt_before")) or 0,
            debt_after=_opt_int(data.get("debt_after")) or 0,
            sessions_processed=_opt_int(data.get("sessions_processed")) or 0,
            bookmarks_processed=_opt_int(data.get("bookmarks_processed")) or 0,
            consolidated_at=parse_timestamp(data.get("consolidated_at")),
            session_ids=[str(i) for i in ids] if isinstance(ids, list) else None,
        )


def _parse_record(record_cls, raw: Any, where: str):
    if not isinstance(raw, dict):
        logger.warning("Skipping non-object entry in %s", where)
        return None
    try:
        return record_cls.from_dict(raw)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Skipping malformed entry in %s: %s", where, e)
        return None


def _parse_list(record_cls, raw: Any, where: str) -> list:
    if not isinstance(raw, list):
        return []
    out = []
    for item in raw:
        rec = _parse_record(record_cls, item, where)
        if rec is not None:
            out.append(rec)
    return out
