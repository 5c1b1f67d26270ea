"""Export functionality for taskclock."""

from taskclock.export_import.base import Exporter
from taskclock.export_import.csv_format import CSVExporter

__all__ = [
    "Exporter",
    "CSVExporter",
]
