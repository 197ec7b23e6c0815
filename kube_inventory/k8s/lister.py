"""Paginated listing of a single resource type."""

from typing import Any, Dict, List, Optional

from ..core.context import RunContext
from ..core.errors import IdleTimeoutError, RunAbortedError, SinkError
from ..model.kubernetes import NormalizedRecord, ResourceTypeDescriptor
from ..model.listing import ListOptions, ListOutcome, PageState
from ..utils.logger import get_logger
from .client import ClusterClient
from .registry import table_for
from .retry import RetryExecutor

logger = get_logger(__name__)

DEFAULT_LIMIT = 5000
DEFAULT_API_CALL_TIMEOUT = 30.0
PROGRESS_LOG_INTERVAL = 5 * DEFAULT_LIMIT


class PaginatedLister:
    """Lists every object of one resource type, page by page.

    Pages are requested strictly in continuation order and each record is
    delivered (to the sink, or into the buffer) before the next page is
    requested. Failures never raise out of ``list``: the returned outcome
    carries the error together with whatever was collected before it.
    """

    def __init__(
        self,
        client: ClusterClient,
        retry: Optional[RetryExecutor] = None,
        api_call_timeout: float = DEFAULT_API_CALL_TIMEOUT,
    ):
        self.client = client
        self.retry = retry or RetryExecutor()
        self.api_call_timeout = api_call_timeout

    def list(
        self,
        ctx: RunContext,
        descriptor: ResourceTypeDescriptor,
        options: Optional[ListOptions] = None,
    ) -> ListOutcome:
        options = options or ListOptions()
        log_prefix = f"[{descriptor.gvr}] "
        buffer: Optional[List[NormalizedRecord]] = None if options.streaming else []
        state = PageState(last_progress_time=ctx.now())

        while True:
            if ctx.done():
                err = ctx.error()
                logger.warning(f"{log_prefix}Operation stopped: {err.reason}")
                return ListOutcome(items=buffer, count=state.items_seen_this_type, error=err)

            if ctx.now() - state.last_progress_time > ctx.idle_timeout:
                err = IdleTimeoutError(ctx.idle_timeout)
                logger.warning(f"{log_prefix}Operation stopped: {err}")
                return ListOutcome(items=buffer, count=state.items_seen_this_type, error=err)

            try:
                page = self.retry.execute(
                    ctx,
                    f"{log_prefix}List (page)",
                    lambda c: self._fetch_page(c, descriptor, options.page_size, state),
                )
            except RunAbortedError as e:
                logger.warning(f"{log_prefix}Operation stopped: {e.reason}")
                return ListOutcome(items=buffer, count=state.items_seen_this_type, error=e)
            except Exception as e:
                logger.error(f"{log_prefix}Persistent error listing page: {e}")
                return ListOutcome(items=buffer, count=state.items_seen_this_type, error=e)

            if page is None:
                logger.warning(f"{log_prefix}List result was empty after a successful API call")
                break

            state.last_progress_time = ctx.now()
            items = page.get("items") or []
            if items and (
                state.items_seen_this_type == 0
                or state.items_seen_this_type % PROGRESS_LOG_INTERVAL < len(items)
            ):
                logger.info(
                    f"{log_prefix}Processing page (processed {state.items_seen_this_type} items so far)..."
                )

            list_kind = _item_kind_from_list(page.get("kind"))
            list_api_version = page.get("apiVersion", "")
            for item in items:
                record = self._normalize(item, descriptor, list_kind, list_api_version, options, log_prefix)
                if options.stream_sink is not None:
                    try:
                        options.stream_sink(record)
                    except Exception as e:
                        err = SinkError(e)
                        logger.error(f"{log_prefix}Operation stopped: {err}")
                        return ListOutcome(items=buffer, count=state.items_seen_this_type, error=err)
                else:
                    buffer.append(record)
                state.items_seen_this_type += 1

            state.continuation_token = (page.get("metadata") or {}).get("continue") or ""
            if options.page_size <= 0 or not state.continuation_token:
                break

        logger.info(f"{log_prefix}Successfully listed {state.items_seen_this_type} items for this type.")
        return ListOutcome(items=buffer, count=state.items_seen_this_type)

    def _fetch_page(
        self, ctx: RunContext, descriptor: ResourceTypeDescriptor, page_size: int, state: PageState
    ) -> Dict[str, Any]:
        # The idle window includes time spent in retry backoff.
        idle_left = ctx.idle_timeout - (ctx.now() - state.last_progress_time)
        if idle_left <= 0:
            raise IdleTimeoutError(ctx.idle_timeout)
        return self.client.list_page(
            descriptor,
            limit=page_size,
            continue_token=state.continuation_token,
            timeout=ctx.call_timeout(min(self.api_call_timeout, idle_left)),
        )

    def _normalize(
        self,
        item: Dict[str, Any],
        descriptor: ResourceTypeDescriptor,
        list_kind: str,
        list_api_version: str,
        options: ListOptions,
        log_prefix: str,
    ) -> NormalizedRecord:
        # List responses usually omit kind/apiVersion on items; take them from the list.
        if not item.get("apiVersion") and list_api_version:
            item = {**item, "apiVersion": list_api_version}

        kind = item.get("kind") or list_kind
        if not kind:
            kind = descriptor.resource
            name = (item.get("metadata") or {}).get("name", "")
            logger.warning(
                f"{log_prefix}Kind missing for item {name}, using resource name '{kind}' for table lookup."
            )

        return NormalizedRecord.from_item(
            item,
            kind=kind,
            table=table_for(kind),
            include_metadata=options.include_metadata,
            include_status=options.include_status,
        )


def _item_kind_from_list(list_kind: Optional[str]) -> str:
    """``PodList`` -> ``Pod``; anything else -> empty."""
    if list_kind and list_kind.endswith("List") and len(list_kind) > 4:
        return list_kind[:-4]
    return ""
