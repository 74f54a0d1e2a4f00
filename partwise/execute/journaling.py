"""
Run log and export journal for partwise runs.

RunLog is the plain-text log of a run (one "HH:MM:SS - message" line per
event) that ends up next to the exported artifacts. ExportJournal records
one CSV row per export job for audit.
"""

import csv
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from partwise.schemas import EXPORT_REPORT_FIELDS, TransferResult


LogFn = Callable[[str], None]


def console_log(message: str) -> None:
    """Default log sink: print with the CLI prefix."""
    print(f"[partwise] {message}")


class RunLog:
    """
    Collects timestamped log lines for one run.

    Calling the instance logs a message, so it can be handed to any engine
    component that takes a `log` callable.
    """

    def __init__(self, echo: bool = True, clock: Callable[[], datetime] = datetime.now):
        self.echo = echo
        self._clock = clock
        self.lines: List[str] = []

    def __call__(self, message: str) -> None:
        self.log(message)

    def log(self, message: str) -> None:
        line = f"{self._clock():%H:%M:%S} - {message}"
        self.lines.append(line)
        if self.echo:
            console_log(message)

    @property
    def text(self) -> str:
        return "\n".join(self.lines) + ("\n" if self.lines else "")

    def write(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.text, encoding="utf-8")
        return path


class ExportJournal:
    """
    Append-only journal of export jobs.

    Journal format (CSV):
    - Timestamp: ISO 8601 datetime
    - Package / ExportCode / Part / FileName: what was exported
    - Status: Exported | Failed | Skipped
    - Requested / Transferred / Skipped / Failed: item counts
    - Details: error message and failure categories
    """

    def __init__(self, journal_path: Path):
        self.path = Path(journal_path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        if not self.path.exists():
            self._write_header()

    def _write_header(self):
        with self.path.open('w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=EXPORT_REPORT_FIELDS)
            writer.writeheader()

    def record(self, result: TransferResult):
        """Append one export outcome."""
        with self.path.open('a', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=EXPORT_REPORT_FIELDS)
            row = result.to_csv_row()
            row['Timestamp'] = datetime.now().isoformat(timespec='seconds')
            writer.writerow(row)

    def read_rows(self) -> List[dict]:
        with self.path.open('r', newline='', encoding='utf-8') as f:
            return list(csv.DictReader(f))


def get_journal(dest_root: Path, name: Optional[str] = None) -> ExportJournal:
    """Get or create the export journal for a destination directory."""
    return ExportJournal(Path(dest_root) / (name or 'ExportReport.csv'))
