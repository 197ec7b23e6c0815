"""Run summary and output document models."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .kubernetes import NormalizedRecord


class RunStatus(str, Enum):
    """Final verdict of an inventory run."""

    COMPLETED = "completed"
    PARTIAL_FAILURE = "partial_failure"
    INTERRUPTED = "interrupted"
    FAILED = "failed"


class RunSummary(BaseModel):
    """Outcome of a whole run. Built once, never mutated."""

    status: RunStatus
    total_items: int = 0
    per_table_counts: Dict[str, int] = Field(default_factory=dict)
    failed_type_names: List[str] = Field(default_factory=list)
    reason: Optional[str] = None
    error: Optional[str] = None

    class Config:
        frozen = True


class ResourceTableResult(BaseModel):
    """Buffered records for one resource table."""

    resource_table: str
    total_count: int = 0
    items: List[NormalizedRecord] = Field(default_factory=list)


class ListOutput(BaseModel):
    """Buffered-mode document: records grouped by table, plus the summary."""

    results: Dict[str, ResourceTableResult] = Field(default_factory=dict)
    list_summary: RunSummary

    @property
    def records(self) -> List[NormalizedRecord]:
        """Flat record list in the order tables were first seen."""
        flat: List[NormalizedRecord] = []
        for entry in self.results.values():
            flat.extend(entry.items)
        return flat

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
