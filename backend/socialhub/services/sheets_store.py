"""
SocialHub Backend — Google Sheets Tabular Store
=================================================

What:  TabularStore backed by a Google spreadsheet (Sheets API v4).
How:   google-api-python-client with service-account credentials. The client
       is synchronous, so every request runs in a worker thread via
       asyncio.to_thread to keep the event loop free. The resource shares one
       httplib2 connection, which is not thread-safe, so request execution is
       serialized with a lock.
Who:   Built by create_app() when GOOGLE_SPREADSHEET_ID is set; also used by
       socialhub.scripts.init_sheets to write the header rows.

Row updates scan the whole table (column A) for the key. The spreadsheet is
a reporting mirror, so the linear scan is acceptable.
"""

import asyncio
import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build

from socialhub.services.mirror import TABLE_HEADERS, TabularStore

logger = logging.getLogger(__name__)

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def _last_column(table: str) -> str:
    return chr(ord("A") + len(TABLE_HEADERS[table]) - 1)


class SheetsTabularStore(TabularStore):
    """Writes mirror rows into the Posts, Logins and UserStats sheets."""

    def __init__(
        self,
        spreadsheet_id: str,
        service_account_info: Optional[Dict[str, Any]] = None,
        service: Any = None,
    ):
        """
        Args:
            spreadsheet_id:       Target spreadsheet
            service_account_info: Parsed service account key (ignored when
                                  `service` is given)
            service:              Prebuilt Sheets API resource
        """
        self.spreadsheet_id = spreadsheet_id
        self._service_account_info = service_account_info
        self._service = service
        self._lock = threading.Lock()

    def _values(self):
        if self._service is None:
            credentials = service_account.Credentials.from_service_account_info(
                self._service_account_info, scopes=SHEETS_SCOPES
            )
            self._service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
            logger.info("Google Sheets client initialized for %s", self.spreadsheet_id)
        return self._service.spreadsheets().values()

    async def _execute(self, request) -> Any:
        def run():
            with self._lock:
                return request.execute()

        return await asyncio.to_thread(run)

    async def append_row(self, table: str, row: List[Any]) -> None:
        request = self._values().append(
            spreadsheetId=self.spreadsheet_id,
            range=f"{table}!A:{_last_column(table)}",
            valueInputOption="USER_ENTERED",
            insertDataOption="INSERT_ROWS",
            body={"values": [row]},
        )
        await self._execute(request)

    async def update_cells(self, table: str, key: str, cells: Mapping[str, Any]) -> bool:
        values = self._values()
        response = await self._execute(
            values.get(
                spreadsheetId=self.spreadsheet_id,
                range=f"{table}!A:{_last_column(table)}",
            )
        )
        rows = response.get("values", [])

        row_number = None
        for index, row in enumerate(rows):
            if row and row[0] == key:
                row_number = index + 1  # sheet rows are 1-based
                break
        if row_number is None:
            return False

        data = [
            {"range": f"{table}!{column}{row_number}", "values": [[value]]}
            for column, value in cells.items()
        ]
        await self._execute(
            values.batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={"valueInputOption": "USER_ENTERED", "data": data},
            )
        )
        return True

    async def write_headers(self, table: str, headers: List[str]) -> None:
        request = self._values().update(
            spreadsheetId=self.spreadsheet_id,
            range=f"{table}!A1:{_last_column(table)}1",
            valueInputOption="USER_ENTERED",
            body={"values": [headers]},
        )
        await self._execute(request)
        logger.info("Header row written for sheet %s", table)
