"""Test configuration and fixtures."""

import pytest
from typing import Any, Dict, List, Optional

from kubernetes.client.exceptions import ApiException

from kube_inventory.core.context import DEFAULT_HARD_TIMEOUT, DEFAULT_IDLE_TIMEOUT, RunContext
from kube_inventory.k8s.lister import PaginatedLister
from kube_inventory.k8s.retry import RetryExecutor, RetryPolicy
from kube_inventory.model.kubernetes import ResourceTypeDescriptor


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class ManualContext(RunContext):
    """RunContext whose waits advance a manual clock instead of sleeping."""

    def __init__(
        self,
        hard_timeout: Optional[float] = DEFAULT_HARD_TIMEOUT,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        clock: Optional[ManualClock] = None,
    ):
        self.clock = clock or ManualClock()
        super().__init__(hard_timeout=hard_timeout, idle_timeout=idle_timeout, clock=self.clock)
        self.waits: List[float] = []

    def wait(self, seconds: float) -> bool:
        self.waits.append(seconds)
        remaining = self.remaining()
        self.clock.advance(seconds if remaining is None else min(seconds, remaining))
        return not self.done()


def api_error(status: int, reason: str = "", headers: Optional[Dict[str, str]] = None, body: str = ""):
    """ApiException as raised by the kubernetes client for an HTTP error."""
    exc = ApiException(status=status, reason=reason or f"HTTP {status}")
    exc.headers = headers
    exc.body = body
    return exc


def api_resource(
    name: str,
    kind: str,
    namespaced: bool = True,
    verbs=("get", "list", "watch"),
    singular: str = "",
    short_names=(),
) -> Dict[str, Any]:
    """One entry of an APIResourceList."""
    return {
        "name": name,
        "kind": kind,
        "namespaced": namespaced,
        "verbs": list(verbs),
        "singularName": singular,
        "shortNames": list(short_names),
    }


def make_item(name: str, namespace: str = "default", **extra) -> Dict[str, Any]:
    """A list item as returned by the API server (no kind/apiVersion)."""
    metadata = {
        "name": name,
        "uid": f"uid-{name}",
        "resourceVersion": "1",
        "creationTimestamp": "2024-01-01T12:00:00Z",
    }
    if namespace:
        metadata["namespace"] = namespace
    metadata.update(extra.pop("metadata", {}))
    return {"metadata": metadata, **extra}


def make_page(
    kind: str, api_version: str, items: List[Dict[str, Any]], continue_token: str = ""
) -> Dict[str, Any]:
    """A list response page."""
    return {
        "kind": f"{kind}List",
        "apiVersion": api_version,
        "metadata": {"continue": continue_token} if continue_token else {},
        "items": items,
    }


class FakeClusterClient:
    """In-memory stand-in for ClusterClient.

    ``pages`` maps a list path to the responses returned in order; an entry
    may be an exception to raise or a callable producing the response.
    """

    def __init__(
        self,
        core_resources: Optional[List[Dict[str, Any]]] = None,
        groups: Optional[Dict[str, Dict[str, List[Dict[str, Any]]]]] = None,
        pages: Optional[Dict[str, List[Any]]] = None,
    ):
        self.core_resources = core_resources or []
        self.groups = groups or {}
        self.pages = pages or {}
        self.failing_group_versions: Dict[str, Exception] = {}
        self.discovery_error: Optional[Exception] = None
        self.calls: List[tuple] = []
        self.discovery_calls = 0

    def list_page(self, descriptor, limit=0, continue_token="", timeout=None):
        self.calls.append((descriptor.list_path, limit, continue_token))
        responses = self.pages.get(descriptor.list_path)
        if not responses:
            return make_page(descriptor.kind, descriptor.group_version, [])
        response = responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response()
        return response

    def get_core_versions(self) -> List[str]:
        self.discovery_calls += 1
        if self.discovery_error is not None:
            raise self.discovery_error
        return ["v1"]

    def get_api_groups(self) -> List[Dict[str, Any]]:
        groups = []
        for name, versions in self.groups.items():
            version_names = list(versions)
            groups.append(
                {
                    "name": name,
                    "versions": [{"groupVersion": f"{name}/{v}", "version": v} for v in version_names],
                    "preferredVersion": {"groupVersion": f"{name}/{version_names[0]}", "version": version_names[0]},
                }
            )
        return groups

    def get_resource_list(self, group_version: str) -> Dict[str, Any]:
        if group_version in self.failing_group_versions:
            raise self.failing_group_versions[group_version]
        if group_version == "v1":
            return {"groupVersion": "v1", "resources": self.core_resources}
        group, version = group_version.split("/", 1)
        return {"groupVersion": group_version, "resources": self.groups[group][version]}


PODS = ResourceTypeDescriptor(version="v1", resource="pods", kind="Pod", namespaced=True)
SERVICES = ResourceTypeDescriptor(version="v1", resource="services", kind="Service", namespaced=True)
DEPLOYMENTS = ResourceTypeDescriptor(
    group="apps", version="v1", resource="deployments", kind="Deployment", namespaced=True
)
WIDGETS = ResourceTypeDescriptor(
    group="example.com", version="v1", resource="widgets", kind="Widget", namespaced=True
)


@pytest.fixture
def ctx():
    """Run context driven by a manual clock."""
    return ManualContext()


@pytest.fixture
def fast_retry():
    """Retry executor with jitter disabled."""
    return RetryExecutor(RetryPolicy(), rand=lambda low, high: 0.0)


@pytest.fixture
def fake_client():
    """A small cluster: pods, services, deployments and one custom resource."""
    return FakeClusterClient(
        core_resources=[
            api_resource("pods", "Pod", singular="pod", short_names=("po",)),
            api_resource("pods/log", "Pod", verbs=("get",)),
            api_resource("services", "Service", singular="service", short_names=("svc",)),
            api_resource("bindings", "Binding", verbs=("create",)),
            api_resource("nodes", "Node", namespaced=False, singular="node", short_names=("no",)),
        ],
        groups={
            "apps": {
                "v1": [
                    api_resource("deployments", "Deployment", singular="deployment", short_names=("deploy",)),
                    api_resource("deployments/scale", "Scale", verbs=("get", "update")),
                ]
            },
            "example.com": {
                "v1": [api_resource("widgets", "Widget", singular="widget", short_names=("wd",))],
                "v1beta1": [api_resource("widgets", "Widget", singular="widget")],
            },
        },
    )


@pytest.fixture
def lister(fake_client, fast_retry):
    """Paginated lister over the fake cluster."""
    return PaginatedLister(fake_client, retry=fast_retry)
