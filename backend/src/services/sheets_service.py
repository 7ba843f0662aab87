"""Google Sheets client used as the feedback record store."""

import logging
from urllib.parse import quote

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from services.errors import StoreError
from utils.constants import DEFAULT_SHEET_NAME

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
REQUEST_TIMEOUT_SECONDS = 10


def _column_letter(count: int) -> str:
    """Spreadsheet column letter for a 1-based column number (1 -> A, 27 -> AA)."""
    letters = ""
    while count > 0:
        count, remainder = divmod(count - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


class SheetsService:
    """Reads and appends rows in one sheet of a spreadsheet.

    Talks to the Sheets v4 values API over an authorized requests session.
    Every transport or auth failure is raised as StoreError.
    """

    def __init__(
        self,
        spreadsheet_id: str | None,
        credentials_file: str | None = None,
        session: requests.Session | None = None,
        sheet_name: str = DEFAULT_SHEET_NAME,
        column_count: int = 7,
    ):
        """Initialize the sheets client.

        Args:
            spreadsheet_id: Id of the spreadsheet (from its URL)
            credentials_file: Service account JSON used to build the session
            session: Pre-authorized session. Built from credentials_file on
                first use when not given.
            sheet_name: Tab holding the records
            column_count: Number of columns in a record
        """
        self.spreadsheet_id = spreadsheet_id
        self.credentials_file = credentials_file
        self.session = session
        self.sheet_name = sheet_name
        self.last_column = _column_letter(column_count)

    @property
    def configured(self) -> bool:
        return bool(self.spreadsheet_id)

    def _get_session(self) -> requests.Session:
        """Get the authorized session, loading service account credentials once.

        Raises:
            StoreError: If the spreadsheet id is missing or the credentials
                file cannot be loaded
        """
        if not self.spreadsheet_id:
            raise StoreError("Spreadsheet is not configured (GOOGLE_SHEET_ID)")

        if self.session is None:
            if not self.credentials_file:
                raise StoreError("Google credentials file is not configured")
            try:
                credentials = service_account.Credentials.from_service_account_file(
                    self.credentials_file, scopes=SCOPES
                )
            except (OSError, ValueError) as e:
                raise StoreError(
                    f"Could not load Google credentials from {self.credentials_file}: {e}"
                )
            self.session = AuthorizedSession(credentials)

        return self.session

    @property
    def table_range(self) -> str:
        return f"{self.sheet_name}!A:{self.last_column}"

    @property
    def header_range(self) -> str:
        return f"{self.sheet_name}!A1:{self.last_column}1"

    def _values_url(self, cell_range: str, action: str = "") -> str:
        return (
            f"{SHEETS_API_URL}/{self.spreadsheet_id}/values/"
            f"{quote(cell_range, safe='!:')}{action}"
        )

    def _request(self, method: str, url: str, **kwargs) -> dict:
        """Send one request to the Sheets API and decode the JSON body."""
        try:
            response = self._get_session().request(
                method, url, timeout=REQUEST_TIMEOUT_SECONDS, **kwargs
            )
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, GoogleAuthError) as e:
            logger.error("Sheets API %s %s failed: %s", method, url, e)
            raise StoreError(f"Spreadsheet request failed: {e}")
        except ValueError as e:
            raise StoreError(f"Spreadsheet returned invalid JSON: {e}")

    def get_values(self, cell_range: str) -> list[list[str]]:
        """Get the rows in a range. Trailing empty cells are omitted by the API."""
        data = self._request("GET", self._values_url(cell_range))
        return data.get("values", [])

    def get_rows(self) -> list[list[str]]:
        """Get every row of the sheet, header row included."""
        return self.get_values(self.table_range)

    def append_row(self, row: list[str]) -> dict:
        """Append one row after the last row of the table."""
        result = self._request(
            "POST",
            self._values_url(self.table_range, ":append"),
            params={"valueInputOption": "RAW"},
            json={"values": [row]},
        )
        logger.info("Appended row to %s", self.sheet_name)
        return result

    def update_values(self, cell_range: str, rows: list[list[str]]) -> dict:
        """Overwrite a range with the given rows."""
        return self._request(
            "PUT",
            self._values_url(cell_range),
            params={"valueInputOption": "RAW"},
            json={"range": cell_range, "majorDimension": "ROWS", "values": rows},
        )

    def ensure_headers(self, headers: list[str]) -> bool:
        """Write the header row if the sheet has none.

        Returns:
            True if headers were written, False if they already existed
        """
        existing = self.get_values(self.header_range)
        if existing and any(cell for cell in existing[0]):
            logger.info("Sheet headers already exist")
            return False

        self.update_values(self.header_range, [headers])
        logger.info("Sheet headers initialized")
        return True
