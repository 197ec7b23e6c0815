"""Kubernetes resource models."""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ResourceTypeDescriptor(BaseModel):
    """A fully resolved group/version/resource plus its kind and scope."""

    group: str = ""
    version: str
    resource: str
    kind: str = ""
    namespaced: bool = False

    class Config:
        frozen = True

    @property
    def group_version(self) -> str:
        """``v1`` for the core group, ``apps/v1`` otherwise."""
        if self.group:
            return f"{self.group}/{self.version}"
        return self.version

    @property
    def gvr(self) -> str:
        """Identifier used in logs and failed-type lists."""
        return f"{self.group_version}, Resource={self.resource}"

    @property
    def list_path(self) -> str:
        """Cluster-wide list endpoint; for namespaced types this spans all namespaces."""
        if self.group:
            return f"/apis/{self.group}/{self.version}/{self.resource}"
        return f"/api/{self.version}/{self.resource}"


class RecordMetadata(BaseModel):
    """Labels and annotations, included only on request."""

    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)


class NormalizedRecord(BaseModel):
    """One listed object, reduced to the fields every kind shares."""

    kind: str
    object_name: str = ""
    namespace: str = ""
    uid: str = ""
    creation_timestamp: str = ""
    resource_version: str = ""
    api_version: str = ""
    table: str
    metadata: Optional[RecordMetadata] = None
    status: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict with the optional sections left out when not requested."""
        return self.model_dump(exclude_none=True)

    @classmethod
    def from_item(
        cls,
        item: Dict[str, Any],
        kind: str,
        table: str,
        include_metadata: bool = False,
        include_status: bool = False,
    ) -> "NormalizedRecord":
        """Build a record from an unstructured list item."""
        metadata = item.get("metadata") or {}

        record_metadata = None
        if include_metadata:
            record_metadata = RecordMetadata(
                labels=metadata.get("labels") or {},
                annotations=metadata.get("annotations") or {},
            )

        status = None
        if include_status:
            status = item.get("status")
            if not isinstance(status, dict):
                status = {}

        return cls(
            kind=kind.lower(),
            object_name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            uid=metadata.get("uid", ""),
            creation_timestamp=metadata.get("creationTimestamp") or "",
            resource_version=metadata.get("resourceVersion", ""),
            api_version=item.get("apiVersion", ""),
            table=table,
            metadata=record_metadata,
            status=status,
        )
