"""Data models for kube-inventory."""

from .export import ExportFormat
from .kubernetes import NormalizedRecord, RecordMetadata, ResourceTypeDescriptor
from .listing import ListOptions, ListOutcome, PageState
from .report import ListOutput, ResourceTableResult, RunStatus, RunSummary
from .task import IntegrationResult, ResourceTypeResult, TaskResult

__all__ = [
    "ExportFormat",
    "NormalizedRecord",
    "RecordMetadata",
    "ResourceTypeDescriptor",
    "ListOptions",
    "ListOutcome",
    "PageState",
    "ListOutput",
    "ResourceTableResult",
    "RunStatus",
    "RunSummary",
    "IntegrationResult",
    "ResourceTypeResult",
    "TaskResult",
]
