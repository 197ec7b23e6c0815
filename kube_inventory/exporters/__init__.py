"""Result exporters."""

from pathlib import Path
from typing import Optional, TextIO

from ..model.export import ExportFormat
from .base import Exporter
from .json_exporter import JsonExporter, JsonLinesSink
from .yaml_exporter import YamlExporter

__all__ = ["Exporter", "JsonExporter", "JsonLinesSink", "YamlExporter", "get_exporter"]

EXPORTERS = {
    ExportFormat.JSON: JsonExporter,
    ExportFormat.YAML: YamlExporter,
}


def get_exporter(
    export_format: ExportFormat, output_path: Optional[Path] = None, stream: Optional[TextIO] = None
) -> Exporter:
    """Exporter instance for ``export_format``."""
    return EXPORTERS[ExportFormat(export_format)](output_path=output_path, stream=stream)
