"""Models used while paginating a single resource type."""

from typing import Callable, List, Optional

from pydantic import BaseModel

from .kubernetes import NormalizedRecord

RecordSink = Callable[[NormalizedRecord], None]


class ListOptions(BaseModel):
    """Options for listing one resource type."""

    page_size: int = 5000
    include_metadata: bool = False
    include_status: bool = False
    stream_sink: Optional[RecordSink] = None

    class Config:
        arbitrary_types_allowed = True

    @property
    def streaming(self) -> bool:
        return self.stream_sink is not None


class PageState(BaseModel):
    """Pagination progress for the resource type currently being listed."""

    continuation_token: str = ""
    items_seen_this_type: int = 0
    last_progress_time: float


class ListOutcome(BaseModel):
    """What a lister produced for one type, including partial results on error."""

    items: Optional[List[NormalizedRecord]] = None
    count: int = 0
    error: Optional[Exception] = None

    class Config:
        arbitrary_types_allowed = True

    @property
    def ok(self) -> bool:
        return self.error is None
