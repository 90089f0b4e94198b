"""Elapsed time between the stages a flow has reached."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, Field

from .contracts import FlowRecord, check_stage_order
from .errors import IntegrityWarning
from .families import FamilyDescriptor


class TimelineEntry(BaseModel):
    """One reached stage and the time spent getting there from the previous one."""

    stage: str
    label: str
    completed_at: datetime
    actor: str
    # None for the first reached stage and for out-of-order pairs.
    elapsed: Optional[timedelta] = None


class FlowTimeline(BaseModel):
    tracking: str
    ordered_at: datetime
    entries: List[TimelineEntry] = Field(default_factory=list)
    pending: List[str] = Field(default_factory=list)
    dispatched_at: Optional[datetime] = None
    warnings: List[IntegrityWarning] = Field(default_factory=list)

    @property
    def lead_time(self) -> Optional[timedelta]:
        """Order creation to dispatch, when dispatched and consistently ordered."""
        if self.warnings or self.dispatched_at is None:
            return None
        delta = self.dispatched_at - self.ordered_at
        return delta if delta >= timedelta(0) else None


def build_timeline(record: FlowRecord, family: FamilyDescriptor) -> FlowTimeline:
    """Lay out ``record``'s reached stages in ``family`` order."""
    warnings = check_stage_order(record)
    entries: List[TimelineEntry] = []
    pending: List[str] = []
    previous = None
    for spec in family.stages:
        completion = record.stage(spec.name)
        if completion is None:
            pending.append(spec.name)
            continue
        elapsed = None
        if previous is not None and completion.completed_at >= previous.completed_at:
            elapsed = completion.completed_at - previous.completed_at
        entries.append(
            TimelineEntry(
                stage=spec.name,
                label=spec.label,
                completed_at=completion.completed_at,
                actor=completion.user.full_name,
                elapsed=elapsed,
            )
        )
        previous = completion

    terminal = record.stage(family.terminal.name)
    return FlowTimeline(
        tracking=record.tracking,
        ordered_at=record.order.created_at,
        entries=entries,
        pending=pending,
        dispatched_at=terminal.completed_at if terminal else None,
        warnings=warnings,
    )
