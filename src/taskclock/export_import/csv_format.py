"""CSV export of time entries for spreadsheet tools."""

import csv
import io
from datetime import date
from pathlib import Path
from typing import Any, Optional, TextIO

from taskclock.core.models import EnrichedTimeEntry
from taskclock.export_import.base import Exporter

CSV_COLUMNS = [
    "Date",
    "Start Time",
    "End Time",
    "Duration (hours)",
    "Task",
    "Project",
    "Assignee",
    "Status",
    "Description",
]

DEFAULT_EMPTY_MESSAGE = "No time entries found for the selected filters"


def default_filename(start_date: date, end_date: date) -> str:
    """File name for a report covering the given range."""
    return f"time-report-{start_date.isoformat()}-to-{end_date.isoformat()}.csv"


class CSVExporter(Exporter):
    """Export entries as one CSV row each.

    An empty export still produces a data row: a placeholder whose
    Description explains that nothing matched.
    """

    def __init__(
        self,
        output_path: Optional[Path] = None,
        delimiter: str = ",",
        empty_message: str = DEFAULT_EMPTY_MESSAGE,
    ):
        super().__init__(output_path)
        self.delimiter = delimiter
        self.empty_message = empty_message

    def get_file_extension(self) -> str:
        return ".csv"

    def _row(self, entry: EnrichedTimeEntry) -> dict[str, str]:
        return {
            "Date": entry.start_time.strftime("%Y-%m-%d"),
            "Start Time": entry.start_time.strftime("%H:%M:%S"),
            "End Time": entry.end_time.strftime("%H:%M:%S"),
            "Duration (hours)": f"{entry.duration / 3600:.2f}",
            "Task": entry.task_title or "Unknown Task",
            "Project": entry.project or "No Project",
            "Assignee": entry.assignee or "Unknown",
            "Status": entry.status or "",
            "Description": entry.description,
        }

    def write(self, entries: list[EnrichedTimeEntry], sink: TextIO, **kwargs: Any) -> None:
        """Write the header and one row per entry to ``sink``."""
        writer = csv.DictWriter(
            sink,
            fieldnames=CSV_COLUMNS,
            delimiter=self.delimiter,
            quoting=csv.QUOTE_MINIMAL,
            lineterminator="\r\n",
        )
        writer.writeheader()

        if not entries:
            placeholder = {column: "" for column in CSV_COLUMNS}
            placeholder["Description"] = self.empty_message
            writer.writerow(placeholder)
            return

        for entry in entries:
            writer.writerow(self._row(entry))

    def to_csv(self, entries: list[EnrichedTimeEntry]) -> str:
        """Render entries to a CSV string."""
        buffer = io.StringIO()
        self.write(entries, buffer)
        return buffer.getvalue()
