"""Scan configuration."""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..k8s.client import DEFAULT_BURST, DEFAULT_QPS
from ..k8s.lister import DEFAULT_API_CALL_TIMEOUT, DEFAULT_LIMIT
from ..model.listing import ListOptions
from ..utils.logger import get_logger
from .context import DEFAULT_HARD_TIMEOUT, DEFAULT_IDLE_TIMEOUT
from .errors import ConfigurationError

logger = get_logger(__name__)

ENV_PREFIX = "KUBE_INVENTORY_"


class ScanConfig(BaseModel):
    """Everything a run needs besides the cluster itself.

    Values come from defaults, then an optional YAML/JSON file, then
    ``KUBE_INVENTORY_<FIELD>`` environment variables, then CLI options.
    """

    kubeconfig: Optional[str] = None
    kubeconfig_content: Optional[str] = None
    context: Optional[str] = None
    resource_type: Optional[str] = None
    limit: int = DEFAULT_LIMIT
    qps: float = DEFAULT_QPS
    burst: int = DEFAULT_BURST
    stream_mode: bool = False
    include_status: bool = False
    include_metadata: bool = False
    include_types: List[str] = Field(default_factory=list)
    exclude_types: List[str] = Field(default_factory=list)
    hard_timeout: float = DEFAULT_HARD_TIMEOUT
    idle_timeout: float = DEFAULT_IDLE_TIMEOUT
    api_call_timeout: float = DEFAULT_API_CALL_TIMEOUT

    @classmethod
    def from_file(cls, config_path: Path, environ: Optional[Mapping[str, str]] = None) -> "ScanConfig":
        """Load configuration from a YAML or JSON file, then apply environment overrides."""
        config_path = Path(config_path)
        try:
            with open(config_path, "r") as f:
                if config_path.suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
        except (OSError, yaml.YAMLError, ValueError) as e:
            logger.error(f"Failed to load scan config: {e}")
            raise ConfigurationError(f"cannot read config file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"config file {config_path} must contain a mapping")

        logger.info(f"Loaded scan config from {config_path}")
        return cls.from_mapping(data, environ)

    @classmethod
    def from_mapping(
        cls, data: Optional[Dict[str, Any]] = None, environ: Optional[Mapping[str, str]] = None
    ) -> "ScanConfig":
        """Build from a plain mapping with environment overrides applied on top."""
        merged = dict(data or {})
        merged.update(_env_overrides(os.environ if environ is None else environ))
        try:
            return cls(**merged)
        except ValidationError as e:
            raise ConfigurationError(f"invalid scan configuration: {e}") from e

    def merged(self, **overrides: Any) -> "ScanConfig":
        """Copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return self.model_copy(update=values)

    def list_options(self, stream_sink=None) -> ListOptions:
        return ListOptions(
            page_size=self.limit,
            include_metadata=self.include_metadata,
            include_status=self.include_status,
            stream_sink=stream_sink,
        )


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name, field in ScanConfig.model_fields.items():
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None:
            continue
        if field.annotation == List[str]:
            overrides[name] = [part.strip() for part in raw.split(",") if part.strip()]
        else:
            # pydantic coerces "true", "10", "2.5" to the field's type
            overrides[name] = raw
    return overrides
