"""Kubernetes resource scanner.

Drives discovery and the paginated lister over one named resource type or
over every listable type the server advertises, and folds the per-type
outcomes into a single run summary.
"""

from collections import OrderedDict
from typing import Dict, List, Optional

from pydantic import BaseModel

from ..core.context import RunContext
from ..core.errors import DiscoveryError, InventoryError, RunAbortedError
from ..model.kubernetes import NormalizedRecord, ResourceTypeDescriptor
from ..model.listing import ListOptions, ListOutcome
from ..model.report import ListOutput, ResourceTableResult, RunStatus, RunSummary
from ..utils.logger import get_logger
from .client import ClusterClient
from .discovery import DiscoveredResource, DiscoveryCache, ResourceTypeResolver
from .lister import PaginatedLister
from .registry import table_for

logger = get_logger(__name__)


class ScanResult(BaseModel):
    """Summary of a run plus, in buffered mode, the records grouped by table."""

    summary: RunSummary
    output: Optional[ListOutput] = None

    @property
    def records(self) -> List[NormalizedRecord]:
        if self.output is None:
            return []
        return self.output.records


class _RunTally:
    """Mutable accumulation for one run, owned by the scanner's thread."""

    def __init__(self, buffered: bool):
        self.buffered = buffered
        self.total_items = 0
        self.table_counts: Dict[str, int] = {}
        self.results: "OrderedDict[str, ResourceTableResult]" = OrderedDict()
        self.failed_types: List[str] = []
        self.last_error: Optional[BaseException] = None

    def add(self, table: str, descriptor: ResourceTypeDescriptor, outcome: ListOutcome) -> None:
        self.table_counts[table] = self.table_counts.get(table, 0) + outcome.count
        self.total_items += outcome.count

        if self.buffered and outcome.items is not None and (outcome.items or outcome.ok):
            entry = self.results.get(table)
            if entry is None:
                entry = ResourceTableResult(resource_table=table)
                self.results[table] = entry
            entry.items.extend(outcome.items)
            entry.total_count += len(outcome.items)

        if not outcome.ok:
            logger.error(f"Error listing resource type {descriptor.gvr}: {outcome.error}")
            self.failed_types.append(descriptor.gvr)
            self.last_error = outcome.error


class ResourceScanner:
    """Scans a Kubernetes cluster for resources."""

    def __init__(
        self,
        client: ClusterClient,
        options: Optional[ListOptions] = None,
        discovery: Optional[DiscoveryCache] = None,
        lister: Optional[PaginatedLister] = None,
        include_types: Optional[List[str]] = None,
        exclude_types: Optional[List[str]] = None,
    ):
        self.client = client
        self.options = options or ListOptions()
        self.discovery = discovery or DiscoveryCache(client)
        self.resolver = ResourceTypeResolver(self.discovery)
        self.lister = lister or PaginatedLister(client)
        self.include_types = {t.lower() for t in include_types} if include_types else None
        self.exclude_types = {t.lower() for t in exclude_types} if exclude_types else set()

    def scan(self, ctx: RunContext, resource_type: Optional[str] = None) -> ScanResult:
        """List ``resource_type`` if given, otherwise every listable type."""
        if resource_type:
            return self.scan_type(ctx, resource_type)
        return self.scan_all(ctx)

    def scan_type(self, ctx: RunContext, resource_type: str) -> ScanResult:
        """List a single resource type given by kind or resource name."""
        logger.info(f"Listing resource type '{resource_type}'")
        tally = _RunTally(buffered=not self.options.streaming)

        try:
            self.discovery.initialize()
            descriptor = self.resolver.resolve(ctx, resource_type)
        except RunAbortedError as e:
            return self._finish(tally, stop_error=e)
        except InventoryError as e:
            logger.error(f"Error finding resource type '{resource_type}': {e}")
            return self._finish(tally, fatal_error=e)

        outcome = self.lister.list(ctx, descriptor, self.options)
        kind = descriptor.kind or descriptor.resource
        if outcome.items and outcome.items[0].kind:
            kind = outcome.items[0].kind
        tally.add(table_for(kind), descriptor, outcome)

        if isinstance(outcome.error, RunAbortedError):
            return self._finish(tally, stop_error=outcome.error)
        if outcome.error is not None:
            return self._finish(tally, fatal_error=outcome.error)
        return self._finish(tally)

    def scan_all(self, ctx: RunContext) -> ScanResult:
        """Discover every listable resource type and list each in discovery order."""
        logger.info("Listing all resource types")
        tally = _RunTally(buffered=not self.options.streaming)

        try:
            self.discovery.initialize()
        except DiscoveryError as e:
            if e.status == 404:
                logger.warning("Discovery API not found, discovery might be incomplete.")
                return self._finish(tally)
            logger.error(str(e))
            return self._finish(tally, fatal_error=e)

        grouped = self.discovery.preferred_resources()
        logger.info(f"Found {sum(len(r) for r in grouped.values())} resource types to consider")

        for group_version, resources in grouped.items():
            stop_error = self._scan_group(ctx, group_version, resources, tally)
            if stop_error is not None:
                return self._finish(tally, stop_error=stop_error)

        return self._finish(tally)

    def _scan_group(
        self,
        ctx: RunContext,
        group_version: str,
        resources: List[DiscoveredResource],
        tally: _RunTally,
    ) -> Optional[RunAbortedError]:
        """List each type of one group version; return an error only when the run must stop."""
        for resource in resources:
            if ctx.done():
                return ctx.error()
            if not resource.listable or not self._wanted(resource.descriptor):
                continue

            descriptor = resource.descriptor
            kind = descriptor.kind
            if not kind:
                kind = descriptor.resource
                logger.warning(
                    f"[{descriptor.gvr}] Kind missing in discovery, using resource name '{kind}' for table lookup."
                )

            outcome = self.lister.list(ctx, descriptor, self.options)
            tally.add(table_for(kind), descriptor, outcome)

            if isinstance(outcome.error, RunAbortedError):
                return outcome.error
        return None

    def _wanted(self, descriptor: ResourceTypeDescriptor) -> bool:
        kind = descriptor.kind.lower()
        if self.include_types is not None and kind not in self.include_types:
            return False
        return kind not in self.exclude_types

    def _finish(
        self,
        tally: _RunTally,
        stop_error: Optional[RunAbortedError] = None,
        fatal_error: Optional[BaseException] = None,
    ) -> ScanResult:
        """Classify the run and freeze its summary."""
        reason = None
        error = None

        if stop_error is not None:
            status = RunStatus.INTERRUPTED
            reason = stop_error.reason
            error = str(stop_error)
            logger.warning(f"Lister stopped: {reason}")
        elif fatal_error is not None:
            status = RunStatus.FAILED
            error = str(fatal_error)
            logger.error(f"Lister failed with error: {error}")
        elif tally.failed_types:
            status = RunStatus.PARTIAL_FAILURE
            error = (
                f"partial failure listing types: encountered errors for "
                f"{', '.join(tally.failed_types)} (last error: {tally.last_error})"
            )
            logger.warning(f"Lister finished with partial failures: {error}")
        else:
            status = RunStatus.COMPLETED
            logger.info("Lister finished successfully.")

        summary = RunSummary(
            status=status,
            total_items=tally.total_items,
            per_table_counts=dict(tally.table_counts),
            failed_type_names=list(tally.failed_types),
            reason=reason,
            error=error,
        )
        output = None
        if tally.buffered:
            output = ListOutput(results=dict(tally.results), list_summary=summary)

        logger.info(f"Scan complete. Processed {tally.total_items} items")
        return ScanResult(summary=summary, output=output)
