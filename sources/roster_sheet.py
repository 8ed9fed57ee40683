"""Client for the student roster sheet published as CSV."""
import csv
import io
import logging
from typing import Dict, List, Optional

import requests

from processor.exceptions import NotFoundError, TransientExternalError
from processor.models import RosterEntry

logger = logging.getLogger(__name__)


class RosterSheetClient:
    """Reader for the "Student List" roster sheet."""

    # Column positions in the Student List sheet (C, D, G, H)
    NAME_COLUMN = 2
    FOLDER_COLUMN = 3
    NOTE_COLUMN = 6
    HISTORY_COLUMN = 7

    def __init__(self, csv_url: str, timeout: int = 30,
                 session: Optional[requests.Session] = None):
        """
        Initialize the roster client.

        Args:
            csv_url: CSV export URL of the roster sheet
            timeout: HTTP request timeout in seconds (default: 30)
            session: Optional requests session to reuse
        """
        self.csv_url = csv_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _fetch_rows(self) -> List[List[str]]:
        """
        Download the sheet and return its data rows, header skipped.

        Raises:
            TransientExternalError: If the download fails
        """
        try:
            response = self.session.get(self.csv_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch roster sheet: {e}")
            raise TransientExternalError(f"Failed to fetch roster sheet: {e}") from e

        # Sheet exports are UTF-8 even when the charset header is missing
        text = response.content.decode('utf-8-sig')
        rows = list(csv.reader(io.StringIO(text)))
        return rows[1:]

    @staticmethod
    def _cell(row: List[str], index: int) -> str:
        return row[index].strip() if index < len(row) else ''

    def list_entries(self) -> List[RosterEntry]:
        """
        Read every roster row.

        Returns:
            RosterEntry objects in sheet order. Rows are returned as-is;
            blank names or folders are filtered by the consumer.
        """
        entries = [
            RosterEntry(
                student_name=self._cell(row, self.NAME_COLUMN),
                folder_key=self._cell(row, self.FOLDER_COLUMN),
                note_url=self._cell(row, self.NOTE_COLUMN),
                history_url=self._cell(row, self.HISTORY_COLUMN)
            )
            for row in self._fetch_rows()
        ]
        logger.info(f"Loaded {len(entries)} students from roster")
        return entries

    def get_student_folders(self) -> List[str]:
        """Return every non-empty folder key in sheet order."""
        return [entry.folder_key for entry in self.list_entries() if entry.folder_key]

    def get_student_names_by_folder(self, folder_key: str) -> List[str]:
        """
        Return the unique student names filed under a folder.

        Args:
            folder_key: Folder key to match (surrounding whitespace ignored)

        Returns:
            Student names in sheet order, duplicates removed
        """
        if not folder_key:
            return []
        target = folder_key.strip()
        names = []
        for entry in self.list_entries():
            if entry.folder_key == target and entry.student_name not in names:
                names.append(entry.student_name)
        return names

    def get_student_links(self, student_name: str) -> Dict[str, str]:
        """
        Return the lesson note and history links of a student.

        Raises:
            NotFoundError: If the student is not on the roster
        """
        target = student_name.strip()
        for entry in self.list_entries():
            if entry.student_name == target:
                return {'note_url': entry.note_url, 'history_url': entry.history_url}
        raise NotFoundError(f"Student not found in roster: '{student_name}'")
