"""Data models for rendered node configurations."""

from pydantic import BaseModel, Field

from pool_controller.models.node import NodeTaint


class LabelDirective(BaseModel):
    """Labels that must be present (``exist``) or absent on a node."""

    labels: dict[str, str] = Field(default_factory=dict)
    exist: bool = True


class TaintDirective(BaseModel):
    """A taint that must be present (``exist``) or absent on a node, matched by key."""

    taint: NodeTaint
    exist: bool = True


class Configuration(BaseModel):
    """Versioned configuration artifact referenced by a pool. Read-only here."""

    name: str
    labels: list[LabelDirective] = Field(default_factory=list)
    taints: list[TaintDirective] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Configuration":
        """Parse from the Kubernetes API representation."""
        metadata = data.get("metadata") or {}
        spec = data.get("spec") or {}

        return cls(
            name=metadata.get("name", ""),
            labels=[
                LabelDirective(labels=d.get("labels") or {}, exist=d.get("exist", True))
                for d in spec.get("labels") or []
            ],
            taints=[
                TaintDirective(
                    taint=NodeTaint(
                        key=d["taint"]["key"],
                        value=d["taint"].get("value") or "",
                        effect=d["taint"]["effect"],
                    ),
                    exist=d.get("exist", True),
                )
                for d in spec.get("taints") or []
            ],
        )
