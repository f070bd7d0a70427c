"""Data models for configuration pools."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class LabelSelectorRequirement(BaseModel):
    """A set-based selector term (``In``, ``NotIn``, ``Exists``, ``DoesNotExist``)."""

    key: str
    operator: str
    values: list[str] = Field(default_factory=list)


class LabelSelector(BaseModel):
    """Node selector of a pool. All terms must match."""

    match_labels: dict[str, str] = Field(default_factory=dict)
    match_expressions: list[LabelSelectorRequirement] = Field(default_factory=list)

    def is_empty(self) -> bool:
        """An empty selector would select every node."""
        return not self.match_labels and not self.match_expressions

    def to_dict(self) -> dict:
        result = {}
        if self.match_labels:
            result["matchLabels"] = dict(self.match_labels)
        if self.match_expressions:
            result["matchExpressions"] = [r.model_dump() for r in self.match_expressions]
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "LabelSelector":
        return cls(
            match_labels=data.get("matchLabels") or {},
            match_expressions=[
                LabelSelectorRequirement(
                    key=r["key"], operator=r["operator"], values=r.get("values") or []
                )
                for r in data.get("matchExpressions") or []
            ],
        )


class PoolCondition(BaseModel):
    """Pool status condition."""

    type: str  # Updated, Updating, Degraded
    status: str  # True, False
    reason: str = ""
    message: str = ""


class PoolStatus(BaseModel):
    """Rollout summary written back to the pool after each reconciliation."""

    configuration: str = ""
    machine_count: int = 0
    updated_machine_count: int = 0
    ready_machine_count: int = 0
    unavailable_machine_count: int = 0
    degraded_machine_count: int = 0
    conditions: list[PoolCondition] = Field(default_factory=list)

    def get_condition(self, condition_type: str) -> PoolCondition | None:
        return next((c for c in self.conditions if c.type == condition_type), None)

    def to_dict(self) -> dict:
        """Convert to the Kubernetes API representation."""
        return {
            "configuration": {"name": self.configuration},
            "machineCount": self.machine_count,
            "updatedMachineCount": self.updated_machine_count,
            "readyMachineCount": self.ready_machine_count,
            "unavailableMachineCount": self.unavailable_machine_count,
            "degradedMachineCount": self.degraded_machine_count,
            "conditions": [c.model_dump() for c in self.conditions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PoolStatus":
        return cls(
            configuration=(data.get("configuration") or {}).get("name", ""),
            machine_count=data.get("machineCount", 0),
            updated_machine_count=data.get("updatedMachineCount", 0),
            ready_machine_count=data.get("readyMachineCount", 0),
            unavailable_machine_count=data.get("unavailableMachineCount", 0),
            degraded_machine_count=data.get("degradedMachineCount", 0),
            conditions=[PoolCondition(**c) for c in data.get("conditions") or []],
        )


class Pool(BaseModel):
    """A named group of nodes sharing a target configuration and disruption budget."""

    name: str
    node_selector: LabelSelector | None = None
    configuration: str = ""  # empty until the renderer initializes the pool
    max_unavailable: int | str | None = None  # absolute count or "N%"
    paused: bool = False
    deletion_timestamp: datetime | None = None
    status: PoolStatus = Field(default_factory=PoolStatus)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate pool name is not empty."""
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @property
    def is_deleting(self) -> bool:
        return self.deletion_timestamp is not None

    @classmethod
    def from_dict(cls, data: dict) -> "Pool":
        """Parse from the Kubernetes API representation."""
        metadata = data.get("metadata") or {}
        spec = data.get("spec") or {}
        selector = spec.get("nodeSelector")

        return cls(
            name=metadata.get("name", ""),
            node_selector=LabelSelector.from_dict(selector) if selector is not None else None,
            configuration=(spec.get("configuration") or {}).get("name", ""),
            max_unavailable=spec.get("maxUnavailable"),
            paused=bool(spec.get("paused", False)),
            deletion_timestamp=metadata.get("deletionTimestamp"),
            status=PoolStatus.from_dict(data.get("status") or {}),
        )
