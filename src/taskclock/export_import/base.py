"""Base class for export functionality."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, TextIO

from taskclock.core.models import EnrichedTimeEntry


class Exporter(ABC):
    """Base class for all exporters.

    Exporters render to any text sink. ``export_entries`` is a convenience
    for writing to the exporter's output path.
    """

    def __init__(self, output_path: Optional[Path] = None):
        """Initialize exporter.

        Args:
            output_path: Path used by ``export_entries``
        """
        self.output_path = Path(output_path) if output_path else None

    @abstractmethod
    def write(self, entries: list[EnrichedTimeEntry], sink: TextIO, **kwargs: Any) -> None:
        """Write entries to a text stream.

        Args:
            entries: Entries to export
            sink: Open text stream (file, StringIO, stdout)
            **kwargs: Format-specific options
        """

    @abstractmethod
    def get_file_extension(self) -> str:
        """Get the file extension for this format, including the dot."""

    def ensure_output_path(self) -> Path:
        """Ensure the output path's parent directory exists and return the path."""
        if self.output_path is None:
            raise ValueError("No output path configured for this exporter")
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        return self.output_path

    def export_entries(self, entries: list[EnrichedTimeEntry], **kwargs: Any) -> Path:
        """Write entries to the output path.

        Returns:
            The written path
        """
        path = self.ensure_output_path()
        with open(path, "w", newline="", encoding="utf-8") as f:
            self.write(entries, f, **kwargs)
        return path
