"""YAML exporter."""

import yaml

from ..model.report import ListOutput
from .base import Exporter


class YamlExporter(Exporter):
    """Export buffered results as one YAML document."""

    def render(self, output: ListOutput) -> str:
        return yaml.dump(output.to_dict(), default_flow_style=False, sort_keys=False)
