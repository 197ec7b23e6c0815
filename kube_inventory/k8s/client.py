"""Kubernetes client wrapper."""

import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml
from kubernetes import client, config

from ..core.errors import ConfigurationError
from ..model.kubernetes import ResourceTypeDescriptor
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_QPS = 50.0
DEFAULT_BURST = 100


class RateLimiter:
    """Token bucket limiting request rate to ``qps`` with bursts up to ``burst``."""

    def __init__(
        self,
        qps: float,
        burst: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.qps = qps
        self.burst = max(1, burst)
        self.tokens = float(self.burst)
        self._clock = clock
        self._sleep = sleep
        self._last = clock()
        self._lock = threading.Lock()

    def acquire(self) -> float:
        """Take one token, sleeping until one is available. Returns seconds waited."""
        with self._lock:
            now = self._clock()
            elapsed = max(0.0, now - self._last)
            self.tokens = min(self.burst, self.tokens + elapsed * self.qps)
            self._last = now

            if self.tokens >= 1:
                self.tokens -= 1
                return 0.0

            wait_time = (1 - self.tokens) / self.qps
            logger.debug(f"Client-side throttling for {wait_time:.3f}s")
            self._sleep(wait_time)
            self.tokens = 0.0
            self._last = self._clock()
            return wait_time


class ClusterClient:
    """Thin wrapper over the Kubernetes REST API used by the inventory engine.

    Every request goes through the client-side rate limiter and returns the
    decoded JSON body. API errors propagate as ``ApiException`` so the retry
    layer can classify them.
    """

    def __init__(
        self,
        api_client: client.ApiClient,
        qps: float = DEFAULT_QPS,
        burst: int = DEFAULT_BURST,
        context: Optional[str] = None,
    ):
        self.api_client = api_client
        self.context = context
        self.limiter = RateLimiter(qps, burst) if qps > 0 else None
        logger.info(f"Using client rate limiting: QPS={qps:.2f}, Burst={burst}")

    @classmethod
    def from_kubeconfig(
        cls,
        kubeconfig: Optional[str] = None,
        context: Optional[str] = None,
        qps: float = DEFAULT_QPS,
        burst: int = DEFAULT_BURST,
    ) -> "ClusterClient":
        """Build a client from a kubeconfig file, falling back to in-cluster config."""
        configuration = client.Configuration()
        try:
            config.load_kube_config(
                config_file=kubeconfig, context=context, client_configuration=configuration
            )
            logger.debug("Loaded kubeconfig")
        except (config.ConfigException, FileNotFoundError) as e:
            if kubeconfig:
                raise ConfigurationError(f"kubeconfig error: {e}") from e
            try:
                config.load_incluster_config(client_configuration=configuration)
                logger.debug("Loaded in-cluster config")
            except config.ConfigException as incluster_error:
                raise ConfigurationError(
                    f"no usable kubeconfig or in-cluster config: {incluster_error}"
                ) from incluster_error
        except (yaml.YAMLError, OSError, ValueError) as e:
            raise ConfigurationError(f"kubeconfig error: {e}") from e

        return cls(client.ApiClient(configuration), qps=qps, burst=burst, context=context)

    @classmethod
    def from_kubeconfig_content(
        cls,
        content: str,
        context: Optional[str] = None,
        qps: float = DEFAULT_QPS,
        burst: int = DEFAULT_BURST,
    ) -> "ClusterClient":
        """Build a client from kubeconfig YAML text, as handed over by a credential store."""
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"kubeconfig error: invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError("kubeconfig error: expected a mapping")

        configuration = client.Configuration()
        try:
            config.load_kube_config_from_dict(
                data, context=context, client_configuration=configuration
            )
        except (config.ConfigException, ValueError) as e:
            raise ConfigurationError(f"kubeconfig error: {e}") from e

        return cls(client.ApiClient(configuration), qps=qps, burst=burst, context=context)

    def get(
        self,
        path: str,
        query: Optional[List[Tuple[str, Any]]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """GET ``path`` and return the decoded JSON body."""
        if self.limiter:
            self.limiter.acquire()

        logger.debug(f"GET {path} {query or ''}")
        return self.api_client.call_api(
            path,
            "GET",
            query_params=query or [],
            header_params={"Accept": "application/json"},
            response_type="object",
            auth_settings=["BearerToken"],
            _return_http_data_only=True,
            _preload_content=True,
            _request_timeout=timeout,
        )

    def list_page(
        self,
        descriptor: ResourceTypeDescriptor,
        limit: int = 0,
        continue_token: str = "",
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Fetch one page of ``descriptor`` across all namespaces."""
        query: List[Tuple[str, Any]] = []
        if limit > 0:
            query.append(("limit", limit))
        if continue_token:
            query.append(("continue", continue_token))
        return self.get(descriptor.list_path, query=query, timeout=timeout)

    def get_core_versions(self) -> List[str]:
        """Versions served by the legacy core group (``/api``)."""
        return list(self.get("/api").get("versions") or [])

    def get_api_groups(self) -> List[Dict[str, Any]]:
        """Named API groups (``/apis``) with their versions and preferred version."""
        return list(self.get("/apis").get("groups") or [])

    def get_resource_list(self, group_version: str) -> Dict[str, Any]:
        """The APIResourceList for one group version."""
        if "/" in group_version:
            return self.get(f"/apis/{group_version}")
        return self.get(f"/api/{group_version}")

    def get_server_version(self) -> Optional[str]:
        """Server git version, or None if it cannot be read."""
        try:
            return self.get("/version").get("gitVersion")
        except Exception as e:
            logger.warning(f"Could not read server version: {e}")
            return None
