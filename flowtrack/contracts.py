"""Flow record contracts and wire-shape validation."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, StrictInt
from pydantic import ValidationError as PydanticValidationError

from .errors import IntegrityWarning, RecordValidationError
from .families import FamilyDescriptor

logger = logging.getLogger(__name__)


class FlowUser(BaseModel):
    """Warehouse user who completed a stage."""

    model_config = ConfigDict(frozen=True)

    id: StrictInt
    username: str
    full_name: str


class StageCompletion(BaseModel):
    """Record of a user finishing one named stage."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    stage: str
    user: FlowUser
    completed_at: AwareDatetime = Field(alias="created_at")


class OutboundCompletion(StageCompletion):
    """Terminal dispatch stage, keyed to a carrier."""

    expedition: str
    expedition_color: str


class OrderSnapshot(BaseModel):
    """Order metadata captured when the flow was created."""

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, coerce_numbers_to_str=True
    )

    order_id: str = Field(alias="order_ginee_id")
    complained: bool = False
    created_at: AwareDatetime
    tracking: Optional[str] = None


class FlowRecord(BaseModel):
    """One tracked unit and the stages it has reached.

    ``stages`` only holds stages that were actually completed. A stage that
    has not been reached has no entry at all.
    """

    model_config = ConfigDict(frozen=True)

    family: str
    tracking: str
    order: OrderSnapshot
    stages: Dict[str, StageCompletion] = Field(default_factory=dict)

    def stage(self, name: str) -> Optional[StageCompletion]:
        """Return the completion for ``name`` or ``None`` when not reached."""
        return self.stages.get(name)

    def is_reached(self, name: str) -> bool:
        return name in self.stages

    @property
    def completed_stages(self) -> List[StageCompletion]:
        """Completions in family order (insertion order of ``stages``)."""
        return list(self.stages.values())

    @property
    def current_stage(self) -> Optional[str]:
        """Name of the furthest stage reached, or ``None``."""
        completed = self.completed_stages
        return completed[-1].stage if completed else None

    @property
    def is_dispatched(self) -> bool:
        return any(isinstance(s, OutboundCompletion) for s in self.completed_stages)

    @property
    def outbound(self) -> Optional[OutboundCompletion]:
        for completion in self.completed_stages:
            if isinstance(completion, OutboundCompletion):
                return completion
        return None


def _first_error_field(exc: PydanticValidationError, prefix: str) -> tuple[str, str]:
    error = exc.errors()[0]
    loc = [str(part) for part in error.get("loc", ())]
    field = ".".join([prefix, *loc]) if loc else prefix
    return field, error.get("msg", "invalid value")


def _require_mapping(value: Any, field: str) -> Mapping:
    if not isinstance(value, Mapping):
        raise RecordValidationError("expected an object", field=field)
    return value


def _parse_stage(raw: Any, key: str, stage_name: str, carrier: bool) -> StageCompletion:
    data = _require_mapping(raw, key)
    if data.get("user") is None:
        raise RecordValidationError("completed stage has no user", field=f"{key}.user")
    if not data.get("created_at"):
        raise RecordValidationError(
            "completed stage has no timestamp", field=f"{key}.created_at"
        )
    if carrier:
        for required in ("expedition", "expedition_color"):
            if data.get(required) is None:
                raise RecordValidationError(
                    "outbound stage has no carrier data", field=f"{key}.{required}"
                )

    model = OutboundCompletion if carrier else StageCompletion
    try:
        return model.model_validate({**data, "stage": stage_name})
    except PydanticValidationError as exc:
        field, msg = _first_error_field(exc, key)
        raise RecordValidationError(msg, field=field) from exc


def parse_flow_record(raw: Any, family: FamilyDescriptor) -> FlowRecord:
    """Validate ``raw`` against the record model for ``family``.

    Stages are all optional and may appear in any combination. A stage that is
    present (not missing and not ``null``) must be fully populated.

    Raises:
        RecordValidationError: naming the first missing or malformed field.
    """
    data = _require_mapping(raw, "record")

    tracking = data.get("tracking")
    if not isinstance(tracking, str) or not tracking.strip():
        raise RecordValidationError("tracking is required", field="tracking")

    raw_order = data.get("order")
    if raw_order is None:
        raise RecordValidationError("flow has no order", field="order")
    order_data = _require_mapping(raw_order, "order")
    try:
        order = OrderSnapshot.model_validate(order_data)
    except PydanticValidationError as exc:
        field, msg = _first_error_field(exc, "order")
        raise RecordValidationError(msg, field=field) from exc
    if order.tracking is not None and order.tracking != tracking:
        raise RecordValidationError(
            f"order belongs to '{order.tracking}', not '{tracking}'",
            field="order.tracking",
        )

    stages: Dict[str, StageCompletion] = {}
    for spec in family.stages:
        value = data.get(spec.key)
        if value is None:
            continue
        stages[spec.name] = _parse_stage(value, spec.key, spec.name, spec.carrier)

    return FlowRecord(family=family.name, tracking=tracking, order=order, stages=stages)


def check_stage_order(record: FlowRecord) -> List[IntegrityWarning]:
    """Flag reached stages whose timestamps go backwards in family order."""
    warnings: List[IntegrityWarning] = []
    completed = record.completed_stages
    for earlier, later in zip(completed, completed[1:]):
        if later.completed_at < earlier.completed_at:
            warnings.append(
                IntegrityWarning(
                    code="stage_out_of_order",
                    message=f"{later.stage} completed before {earlier.stage}",
                    tracking=record.tracking,
                    details={
                        "earlier_stage": earlier.stage,
                        "earlier_at": earlier.completed_at.isoformat(),
                        "later_stage": later.stage,
                        "later_at": later.completed_at.isoformat(),
                    },
                )
            )
    for warning in warnings:
        logger.warning(f"Integrity warning for tracking={record.tracking}: {warning.message}")
    return warnings
