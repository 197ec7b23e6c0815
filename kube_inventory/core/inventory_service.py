"""Inventory service: one complete run from configuration to summary."""

from typing import Callable, Optional

from ..k8s import ClusterClient, PaginatedLister, ResourceScanner, ScanResult
from ..model.listing import RecordSink
from ..model.report import ListOutput, RunStatus, RunSummary
from ..model.task import TaskResult
from ..utils.logger import get_logger
from .config import ScanConfig
from .context import RunContext, install_signal_handlers
from .errors import ConfigurationError, format_duration

logger = get_logger(__name__)

ClientFactory = Callable[[ScanConfig], ClusterClient]


def build_client(config: ScanConfig) -> ClusterClient:
    """Create a cluster client from inline kubeconfig content or a kubeconfig path."""
    if config.kubeconfig_content:
        return ClusterClient.from_kubeconfig_content(
            config.kubeconfig_content, context=config.context, qps=config.qps, burst=config.burst
        )
    return ClusterClient.from_kubeconfig(
        config.kubeconfig, context=config.context, qps=config.qps, burst=config.burst
    )


class InventoryService:
    """Builds the client and scanner for a config and runs them under one context."""

    def __init__(self, config: ScanConfig, client_factory: ClientFactory = build_client):
        self.config = config
        self.client_factory = client_factory

    def run(
        self,
        stream_sink: Optional[RecordSink] = None,
        ctx: Optional[RunContext] = None,
        handle_signals: bool = True,
    ) -> ScanResult:
        """Run one inventory. Never raises for run outcomes; check the summary status."""
        config = self.config
        if config.stream_mode and stream_sink is None:
            raise ValueError("stream_mode requires a stream sink")

        ctx = ctx or RunContext(hard_timeout=config.hard_timeout, idle_timeout=config.idle_timeout)
        restore_signals = install_signal_handlers(ctx) if handle_signals else (lambda: None)

        try:
            try:
                client = self.client_factory(config)
            except ConfigurationError as e:
                logger.error(f"Error building cluster client: {e}")
                return self._failed(str(e), buffered=stream_sink is None)
            except Exception as e:
                logger.error(f"Unexpected error building cluster client: {e}")
                return self._failed(
                    f"failed to build cluster client: {e}", buffered=stream_sink is None
                )

            scanner = ResourceScanner(
                client,
                options=config.list_options(stream_sink=stream_sink),
                lister=PaginatedLister(client, api_call_timeout=config.api_call_timeout),
                include_types=config.include_types,
                exclude_types=config.exclude_types,
            )

            target = (
                f"Listing resource type '{config.resource_type}'."
                if config.resource_type
                else "Listing all resource types."
            )
            logger.info(
                f"Starting lister with hard timeout limit: {format_duration(config.hard_timeout)}, "
                f"idle timeout: {format_duration(config.idle_timeout)}. "
                f"Stream mode: {stream_sink is not None}. Include Status: {config.include_status}. "
                f"Include Metadata: {config.include_metadata}. {target}"
            )
            return scanner.scan(ctx, config.resource_type)
        finally:
            restore_signals()

    def describe(
        self, integration_id: str, task_result: TaskResult, stream_sink: Optional[RecordSink] = None
    ) -> ScanResult:
        """Run and fold the outcome into ``task_result`` under ``integration_id``."""
        result = self.run(stream_sink=stream_sink)
        fold_into_task_result(task_result, integration_id, result.summary, self.config.resource_type)
        return result

    @staticmethod
    def _failed(error: str, buffered: bool) -> ScanResult:
        summary = RunSummary(status=RunStatus.FAILED, error=error)
        output = ListOutput(list_summary=summary) if buffered else None
        return ScanResult(summary=summary, output=output)


def fold_into_task_result(
    task_result: TaskResult,
    integration_id: str,
    summary: RunSummary,
    resource_type: Optional[str] = None,
) -> None:
    """Record per-table counts and per-type failures of a run on ``task_result``."""
    task_result.integration(integration_id)

    for table, count in summary.per_table_counts.items():
        task_result.record(integration_id, table, count)

    failure_detail = summary.error or summary.reason or ""
    for type_name in summary.failed_type_names:
        task_result.record(integration_id, type_name, 0, failure_detail)

    if summary.status in (RunStatus.FAILED, RunStatus.INTERRUPTED) and not summary.failed_type_names:
        task_result.record(integration_id, resource_type or "*", 0, failure_detail)
