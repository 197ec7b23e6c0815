"""Test API discovery and resource type resolution."""

import threading

import pytest

from conftest import DEPLOYMENTS, PODS, WIDGETS, ManualContext, api_error
from kube_inventory.core.errors import (
    CancelledError,
    DiscoveryError,
    DiscoveryNotInitializedError,
    ResolutionError,
)
from kube_inventory.k8s.discovery import DiscoveryCache, ResourceTypeResolver, _split_group
from kube_inventory.model.kubernetes import ResourceTypeDescriptor


@pytest.mark.unit
class TestDiscoveryCache:
    def test_initialize_is_idempotent(self, fake_client):
        """Test discovery runs once however often it is initialized."""
        cache = DiscoveryCache(fake_client)
        cache.initialize()
        cache.initialize()

        assert cache.initialized
        assert fake_client.discovery_calls == 1

    def test_concurrent_initialize(self, fake_client):
        """Test concurrent callers share one discovery pass."""
        cache = DiscoveryCache(fake_client)
        threads = [threading.Thread(target=cache.initialize) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert fake_client.discovery_calls == 1

    def test_lookup_before_initialize(self, fake_client):
        """Test lookups fail until the cache is built."""
        cache = DiscoveryCache(fake_client)

        with pytest.raises(DiscoveryNotInitializedError):
            cache.preferred_resources()
        with pytest.raises(DiscoveryNotInitializedError):
            cache.descriptor_for_kind("Pod")

    def test_preferred_resources(self, fake_client):
        """Test resources are grouped in discovery order, subresources dropped, one version per group."""
        cache = DiscoveryCache(fake_client)
        cache.initialize()

        grouped = cache.preferred_resources()

        assert list(grouped) == ["v1", "apps/v1", "example.com/v1"]
        assert [r.descriptor.resource for r in grouped["v1"]] == ["pods", "services", "bindings", "nodes"]
        assert [r.descriptor.resource for r in grouped["apps/v1"]] == ["deployments"]
        assert not grouped["v1"][2].listable
        assert grouped["v1"][3].descriptor.namespaced is False

    def test_discovery_failure(self, fake_client):
        """Test an unreachable discovery endpoint raises with the HTTP status."""
        fake_client.discovery_error = api_error(404)
        cache = DiscoveryCache(fake_client)

        with pytest.raises(DiscoveryError) as exc_info:
            cache.initialize()

        assert exc_info.value.status == 404
        assert not cache.initialized

    def test_failed_initialize_can_be_retried(self, fake_client):
        """Test a failed build leaves the cache ready for another attempt."""
        fake_client.discovery_error = ConnectionError("refused")
        cache = DiscoveryCache(fake_client)
        with pytest.raises(DiscoveryError):
            cache.initialize()

        fake_client.discovery_error = None
        cache.initialize()

        assert cache.initialized

    def test_partial_group_failure(self, fake_client):
        """Test one unreachable group version only reduces coverage."""
        fake_client.failing_group_versions["example.com/v1"] = api_error(503)
        cache = DiscoveryCache(fake_client)
        cache.initialize()

        grouped = cache.preferred_resources()

        assert "example.com/v1" in cache.failed_groups
        assert "example.com/v1" not in grouped
        # The next served version of the group takes over.
        assert [r.descriptor.version for r in grouped["example.com/v1beta1"]] == ["v1beta1"]


@pytest.mark.unit
class TestResourceTypeResolver:
    def setup_method(self):
        """Set up test fixtures."""
        self.ctx = ManualContext()

    def _resolver(self, fake_client):
        cache = DiscoveryCache(fake_client)
        cache.initialize()
        return ResourceTypeResolver(cache)

    def test_resolve_by_kind(self, fake_client):
        """Test a kind resolves to its descriptor."""
        assert self._resolver(fake_client).resolve(self.ctx, "Deployment") == DEPLOYMENTS

    def test_kind_and_plural_agree(self, fake_client):
        """Test resolving by kind and by plural resource name gives equal descriptors."""
        resolver = self._resolver(fake_client)

        assert resolver.resolve(self.ctx, "Pod") == resolver.resolve(self.ctx, "pods") == PODS

    @pytest.mark.parametrize("name", ["pod", "po", "PODS", "pods"])
    def test_resource_name_forms(self, fake_client, name):
        """Test singular and short names resolve like the plural."""
        assert self._resolver(fake_client).resolve(self.ctx, name) == PODS

    def test_preferred_version_wins(self, fake_client):
        """Test the group's preferred version is chosen."""
        assert self._resolver(fake_client).resolve(self.ctx, "Widget") == WIDGETS

    def test_group_qualified_name(self, fake_client):
        """Test resource.group form narrows the lookup to one group."""
        resolver = self._resolver(fake_client)

        assert resolver.resolve(self.ctx, "deployments.apps") == DEPLOYMENTS
        with pytest.raises(ResolutionError):
            resolver.resolve(self.ctx, "deployments.example.com")

    def test_cluster_scoped(self, fake_client):
        """Test the scope flag follows discovery."""
        descriptor = self._resolver(fake_client).resolve(self.ctx, "nodes")
        assert descriptor == ResourceTypeDescriptor(version="v1", resource="nodes", kind="Node", namespaced=False)

    def test_unknown_name(self, fake_client):
        """Test both lookup failures are reported."""
        with pytest.raises(ResolutionError) as exc_info:
            self._resolver(fake_client).resolve(self.ctx, "Gadget")

        message = str(exc_info.value)
        assert "kind mapping error" in message
        assert "resource mapping error" in message
        assert exc_info.value.name == "Gadget"

    def test_requires_initialized_cache(self, fake_client):
        """Test resolution before discovery fails."""
        resolver = ResourceTypeResolver(DiscoveryCache(fake_client))

        with pytest.raises(DiscoveryNotInitializedError):
            resolver.resolve(self.ctx, "Pod")

    def test_cancelled_context(self, fake_client):
        """Test a finished context stops resolution."""
        resolver = self._resolver(fake_client)
        self.ctx.cancel()

        with pytest.raises(CancelledError):
            resolver.resolve(self.ctx, "Pod")

    def test_split_group(self):
        """Test name.group parsing."""
        assert _split_group("deployments.apps") == ("deployments", "apps")
        assert _split_group("widgets.example.com") == ("widgets", "example.com")
        assert _split_group("Pod") == ("Pod", None)
