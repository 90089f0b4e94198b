"""Flow family descriptors.

A family fixes the stage sequence and the resource path used at the service
boundary. Everything else (record parsing, queries, charts, the gateway) is
generic over the descriptor.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import ValidationError

MARK_BIND = "mark-bind"
QUALITY_CONTROL = "quality-control"
PACK_CONTROL = "pack-control"
OUTBOUND = "outbound"


class StageSpec(BaseModel):
    """One named stage in a family's sequence."""

    model_config = ConfigDict(frozen=True)

    name: str
    key: str
    label: str
    carrier: bool = False


class FamilyDescriptor(BaseModel):
    """Stage sequence and resource path for one flow family."""

    model_config = ConfigDict(frozen=True)

    name: str
    resource: str
    collection_key: str
    stages: Tuple[StageSpec, ...]

    @field_validator("stages")
    @classmethod
    def _unique_stages(cls, v: Tuple[StageSpec, ...]) -> Tuple[StageSpec, ...]:
        if not v:
            raise ValueError("a family needs at least one stage")
        names = [s.name for s in v]
        keys = [s.key for s in v]
        if len(set(names)) != len(names) or len(set(keys)) != len(keys):
            raise ValueError("stage names and wire keys must be unique")
        return v

    @property
    def stage_names(self) -> List[str]:
        return [s.name for s in self.stages]

    def stage(self, name: str) -> StageSpec:
        """Return the stage called ``name`` or raise ``ValidationError``."""
        for spec in self.stages:
            if spec.name == name:
                return spec
        raise ValidationError(
            f"Family '{self.name}' has no stage '{name}'", field="stage"
        )

    def has_stage(self, name: str) -> bool:
        return any(s.name == name for s in self.stages)

    def position(self, name: str) -> int:
        """Index of ``name`` in the stage sequence."""
        self.stage(name)
        return self.stage_names.index(name)

    @property
    def terminal(self) -> StageSpec:
        return self.stages[-1]


ONLINE = FamilyDescriptor(
    name="online",
    resource="online-flow",
    collection_key="online_flows",
    stages=(
        StageSpec(name=MARK_BIND, key="mb_online", label="MB Online"),
        StageSpec(name=QUALITY_CONTROL, key="qc_online", label="QC Online"),
        StageSpec(name=PACK_CONTROL, key="pc_online", label="PC Online"),
        StageSpec(name=OUTBOUND, key="outbound", label="Outbound", carrier=True),
    ),
)

# Ribbon units skip pack-control.
RIBBON = FamilyDescriptor(
    name="ribbon",
    resource="ribbon-flow",
    collection_key="ribbon_flows",
    stages=(
        StageSpec(name=MARK_BIND, key="mb_ribbon", label="MB Ribbon"),
        StageSpec(name=QUALITY_CONTROL, key="qc_ribbon", label="QC Ribbon"),
        StageSpec(name=OUTBOUND, key="outbound", label="Outbound", carrier=True),
    ),
)

FAMILIES: Dict[str, FamilyDescriptor] = {f.name: f for f in (ONLINE, RIBBON)}


def get_family(name: Optional[str]) -> FamilyDescriptor:
    """Resolve a family descriptor by name (case-insensitive)."""
    key = (name or "").strip().lower()
    try:
        return FAMILIES[key]
    except KeyError:
        known = ", ".join(sorted(FAMILIES))
        raise ValidationError(
            f"Unknown flow family '{name}'. Expected one of: {known}",
            field="family",
        ) from None
