"""JSON exporter."""

import json
import sys
from typing import Optional, TextIO

from ..model.kubernetes import NormalizedRecord
from ..model.report import ListOutput
from .base import Exporter


class JsonExporter(Exporter):
    """Export buffered results as one JSON document."""

    def render(self, output: ListOutput) -> str:
        return json.dumps(output.to_dict(), indent=2)


class JsonLinesSink:
    """Stream sink writing each record as one JSON line as soon as it arrives."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self.count = 0

    def __call__(self, record: NormalizedRecord) -> None:
        self.stream.write(json.dumps(record.to_dict()) + "\n")
        self.stream.flush()
        self.count += 1
