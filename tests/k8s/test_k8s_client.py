"""Test Kubernetes client functionality."""

import pytest
from unittest.mock import MagicMock, Mock, patch

from kubernetes.config import ConfigException

from conftest import DEPLOYMENTS, ManualClock
from kube_inventory.core.errors import ConfigurationError
from kube_inventory.k8s.client import ClusterClient, RateLimiter


@pytest.mark.unit
class TestRateLimiter:
    def test_burst_then_throttle(self):
        """Test the burst is free and the next request waits one token interval."""
        clock = ManualClock()
        sleeps = []

        def sleep(seconds):
            sleeps.append(seconds)
            clock.advance(seconds)

        limiter = RateLimiter(qps=10, burst=3, clock=clock, sleep=sleep)

        assert [limiter.acquire() for _ in range(3)] == [0.0, 0.0, 0.0]
        assert limiter.acquire() == pytest.approx(0.1)
        assert sleeps == [pytest.approx(0.1)]

    def test_refill(self):
        """Test tokens come back over time."""
        clock = ManualClock()
        limiter = RateLimiter(qps=10, burst=1, clock=clock, sleep=Mock())

        limiter.acquire()
        clock.advance(0.5)

        assert limiter.acquire() == 0.0


@pytest.mark.unit
class TestClusterClient:
    def setup_method(self):
        """Set up test fixtures."""
        self.api_client = MagicMock()
        self.client = ClusterClient(self.api_client, qps=0)

    def test_get(self):
        """Test GET requests return the decoded body."""
        self.api_client.call_api.return_value = {"versions": ["v1"]}

        assert self.client.get_core_versions() == ["v1"]
        args, kwargs = self.api_client.call_api.call_args
        assert args == ("/api", "GET")
        assert kwargs["response_type"] == "object"
        assert kwargs["_return_http_data_only"] is True

    def test_list_page_query(self):
        """Test page requests carry limit, continue token and timeout."""
        self.api_client.call_api.return_value = {"items": []}

        self.client.list_page(DEPLOYMENTS, limit=500, continue_token="abc", timeout=30)

        args, kwargs = self.api_client.call_api.call_args
        assert args[0] == "/apis/apps/v1/deployments"
        assert kwargs["query_params"] == [("limit", 500), ("continue", "abc")]
        assert kwargs["_request_timeout"] == 30

    def test_list_page_unlimited(self):
        """Test a non-positive limit sends no query parameters."""
        self.api_client.call_api.return_value = {"items": []}

        self.client.list_page(DEPLOYMENTS, limit=0)

        assert self.api_client.call_api.call_args[1]["query_params"] == []

    def test_resource_list_paths(self):
        """Test core and named groups use their own discovery roots."""
        self.api_client.call_api.return_value = {"resources": []}

        self.client.get_resource_list("v1")
        self.client.get_resource_list("apps/v1")

        paths = [c[0][0] for c in self.api_client.call_api.call_args_list]
        assert paths == ["/api/v1", "/apis/apps/v1"]

    def test_server_version_failure(self):
        """Test an unreadable version gives None."""
        self.api_client.call_api.side_effect = RuntimeError("down")

        assert self.client.get_server_version() is None

    def test_requests_are_rate_limited(self):
        """Test every request takes a token."""
        client = ClusterClient(self.api_client, qps=5, burst=1)
        client.limiter = Mock()
        self.api_client.call_api.return_value = {"groups": []}

        client.get_api_groups()

        client.limiter.acquire.assert_called_once()


@pytest.mark.unit
class TestClientConstruction:
    @patch("kube_inventory.k8s.client.config.load_kube_config")
    def test_from_kubeconfig(self, mock_load):
        """Test kubeconfig loading with an explicit context."""
        client = ClusterClient.from_kubeconfig("/tmp/kubeconfig", context="dev")

        assert mock_load.call_args[1]["config_file"] == "/tmp/kubeconfig"
        assert mock_load.call_args[1]["context"] == "dev"
        assert client.context == "dev"

    @patch("kube_inventory.k8s.client.config.load_kube_config")
    def test_explicit_kubeconfig_error(self, mock_load):
        """Test a broken explicit kubeconfig is a configuration error."""
        mock_load.side_effect = ConfigException("bad file")

        with pytest.raises(ConfigurationError, match="kubeconfig error"):
            ClusterClient.from_kubeconfig("/tmp/kubeconfig")

    @patch("kube_inventory.k8s.client.config.load_incluster_config")
    @patch("kube_inventory.k8s.client.config.load_kube_config")
    def test_in_cluster_fallback(self, mock_load, mock_incluster):
        """Test in-cluster config is used when no kubeconfig is found."""
        mock_load.side_effect = ConfigException("no config")

        ClusterClient.from_kubeconfig()

        mock_incluster.assert_called_once()

    @patch("kube_inventory.k8s.client.config.load_incluster_config")
    @patch("kube_inventory.k8s.client.config.load_kube_config")
    def test_no_config_anywhere(self, mock_load, mock_incluster):
        """Test failing both sources is a configuration error."""
        mock_load.side_effect = ConfigException("no config")
        mock_incluster.side_effect = ConfigException("not in cluster")

        with pytest.raises(ConfigurationError, match="no usable kubeconfig"):
            ClusterClient.from_kubeconfig()

    @patch("kube_inventory.k8s.client.config.load_kube_config_from_dict")
    def test_from_kubeconfig_content(self, mock_load):
        """Test inline kubeconfig YAML is parsed before loading."""
        ClusterClient.from_kubeconfig_content("apiVersion: v1\nkind: Config\n", context="dev")

        assert mock_load.call_args[0][0] == {"apiVersion": "v1", "kind": "Config"}
        assert mock_load.call_args[1]["context"] == "dev"

    def test_malformed_kubeconfig_file(self, tmp_path):
        """Test a kubeconfig file with invalid YAML is a configuration error."""
        kubeconfig = tmp_path / "kubeconfig"
        kubeconfig.write_text("clusters: [\n  - bad: : :")

        with pytest.raises(ConfigurationError, match="kubeconfig error"):
            ClusterClient.from_kubeconfig(str(kubeconfig))

    def test_kubeconfig_directory(self, tmp_path):
        """Test a directory path is a configuration error."""
        with pytest.raises(ConfigurationError, match="kubeconfig error"):
            ClusterClient.from_kubeconfig(str(tmp_path))

    @pytest.mark.parametrize("content", ["just text", "a: [unclosed"])
    def test_invalid_kubeconfig_content(self, content):
        """Test unparseable or non-mapping content is rejected."""
        with pytest.raises(ConfigurationError):
            ClusterClient.from_kubeconfig_content(content)
