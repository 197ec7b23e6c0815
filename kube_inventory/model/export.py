"""Export-related models."""

from enum import Enum


class ExportFormat(str, Enum):
    """Supported output formats for buffered results."""

    YAML = "yaml"
    JSON = "json"
