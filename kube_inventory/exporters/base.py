"""Base exporter class."""

import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, TextIO

from ..model.report import ListOutput
from ..utils.logger import get_logger

logger = get_logger(__name__)


class Exporter(ABC):
    """Base class for buffered-output exporters.

    Writes to ``output_path`` when given, otherwise to ``stream`` (stdout).
    """

    def __init__(self, output_path: Optional[Path] = None, stream: Optional[TextIO] = None):
        self.output_path = Path(output_path) if output_path else None
        self.stream = stream

    @abstractmethod
    def render(self, output: ListOutput) -> str:
        """Serialize the whole document."""
        pass

    def export(self, output: ListOutput) -> Optional[Path]:
        """Write the document; return the file path if one was written."""
        content = self.render(output)

        if self.output_path is None:
            stream = self.stream or sys.stdout
            stream.write(content)
            if not content.endswith("\n"):
                stream.write("\n")
            stream.flush()
            return None

        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_path, "w") as f:
            f.write(content)

        logger.info(
            f"Exported {output.list_summary.total_items} item(s) "
            f"across {len(output.results)} table(s) to {self.output_path}"
        )
        return self.output_path
