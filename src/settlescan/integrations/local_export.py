"""Local CSV export of extracted settlement records."""

import csv
import fcntl
import os
from pathlib import Path

from settlescan.models import RECORD_FIELDS, ExtractedRecord
from settlescan.table import record_to_row

CSV_HEADER = list(RECORD_FIELDS)


class LocalExporter:
    """Writes extracted records to a local CSV file.

    New files start with a UTF-8 BOM and a header so that spreadsheet
    applications detect the encoding; existing files are appended to.
    """

    def export(self, records: list[ExtractedRecord], path: Path) -> None:
        """Append records to ``path``, creating it with a header if needed.

        Args:
            records: Records to export
            path: Path to the CSV file to write/append to

        Raises:
            PermissionError: If the file cannot be written due to permissions
            OSError: If there are filesystem-related errors
        """
        if not records:
            return

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, mode="a", encoding="utf-8", newline="") as f:
            # Lock so concurrent CLI runs cannot interleave rows
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                is_new_file = os.fstat(f.fileno()).st_size == 0
                if is_new_file:
                    f.write("\ufeff")  # UTF-8 BOM

                writer = csv.writer(f)
                if is_new_file:
                    writer.writerow(CSV_HEADER)

                for record in records:
                    writer.writerow(record_to_row(record))
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
