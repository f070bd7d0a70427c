"""Data models for cluster nodes."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from pool_controller.constants import (
    CURRENT_CONFIG_ANNOTATION,
    DESIRED_CONFIG_ANNOTATION,
    UPDATE_STATE_ANNOTATION,
)


class NodeTaint(BaseModel):
    """Kubernetes node taint."""

    key: str
    value: str = ""
    effect: str  # NoSchedule, PreferNoSchedule, NoExecute
    time_added: datetime | None = None  # set by the node lifecycle controller on NoExecute

    @field_validator("effect")
    @classmethod
    def validate_effect(cls, v: str) -> str:
        """Validate taint effect is one of the allowed values."""
        allowed = ["NoSchedule", "PreferNoSchedule", "NoExecute"]
        if v not in allowed:
            raise ValueError(f"effect must be one of {allowed}, got {v}")
        return v

    def to_dict(self) -> dict:
        """Convert to the Kubernetes API representation."""
        result = {"key": self.key, "effect": self.effect}
        if self.value:
            result["value"] = self.value
        if self.time_added is not None:
            added = self.time_added
            if added.tzinfo is not None:
                added = added.astimezone(timezone.utc)
            result["timeAdded"] = added.strftime("%Y-%m-%dT%H:%M:%SZ")
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "NodeTaint":
        """Parse from the Kubernetes API representation."""
        return cls(
            key=data["key"],
            value=data.get("value") or "",
            effect=data["effect"],
            time_added=data.get("timeAdded"),
        )


class NodeCondition(BaseModel):
    """A single entry of a node's status conditions."""

    type: str
    status: str  # True, False, Unknown
    reason: str = ""
    message: str = ""


class Node(BaseModel):
    """Point-in-time snapshot of a cluster node."""

    name: str
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    taints: list[NodeTaint] = Field(default_factory=list)
    conditions: list[NodeCondition] = Field(default_factory=list)
    unschedulable: bool = False
    resource_version: str | None = None
    deletion_timestamp: datetime | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate node name is not empty."""
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @property
    def current_config(self) -> str:
        return self.annotations.get(CURRENT_CONFIG_ANNOTATION, "")

    @property
    def desired_config(self) -> str:
        return self.annotations.get(DESIRED_CONFIG_ANNOTATION, "")

    @property
    def update_state(self) -> str:
        return self.annotations.get(UPDATE_STATE_ANNOTATION, "")

    def to_patch_body(self) -> dict:
        """Return the fields this controller is allowed to patch.

        Only labels, annotations and taints are ever diffed, so unrelated fields
        on the live object are never overwritten.
        """
        return {
            "metadata": {
                "labels": dict(self.labels),
                "annotations": dict(self.annotations),
            },
            "spec": {"taints": [t.to_dict() for t in self.taints]},
        }

    def to_dict(self) -> dict:
        """Convert to the Kubernetes API representation."""
        metadata = {
            "name": self.name,
            "labels": dict(self.labels),
            "annotations": dict(self.annotations),
        }
        if self.resource_version is not None:
            metadata["resourceVersion"] = self.resource_version
        if self.deletion_timestamp is not None:
            metadata["deletionTimestamp"] = self.deletion_timestamp.isoformat()

        spec = {"taints": [t.to_dict() for t in self.taints]}
        if self.unschedulable:
            spec["unschedulable"] = True

        return {
            "metadata": metadata,
            "spec": spec,
            "status": {"conditions": [c.model_dump() for c in self.conditions]},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Node":
        """Parse from the Kubernetes API representation."""
        metadata = data.get("metadata") or {}
        spec = data.get("spec") or {}
        status = data.get("status") or {}

        return cls(
            name=metadata.get("name", ""),
            labels=metadata.get("labels") or {},
            annotations=metadata.get("annotations") or {},
            taints=[NodeTaint.from_dict(t) for t in spec.get("taints") or []],
            conditions=[
                NodeCondition(
                    type=c["type"],
                    status=c["status"],
                    reason=c.get("reason") or "",
                    message=c.get("message") or "",
                )
                for c in status.get("conditions") or []
            ],
            unschedulable=bool(spec.get("unschedulable", False)),
            resource_version=metadata.get("resourceVersion"),
            deletion_timestamp=metadata.get("deletionTimestamp"),
        )
