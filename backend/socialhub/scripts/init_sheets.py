"""
SocialHub Backend — Spreadsheet Initialization
================================================

What:  Writes the fixed header row of the Posts, Logins and UserStats sheets.
When:  Once, after creating the spreadsheet and sharing it with the service
       account. Safe to re-run: it only overwrites row 1.

Usage:
    socialhub-init-sheets
    python -m socialhub.scripts.init_sheets
"""

import asyncio
import logging
import sys

from socialhub.config import Settings, settings
from socialhub.services.mirror import TABLE_HEADERS, TabularStore
from socialhub.services.sheets_store import SheetsTabularStore

logger = logging.getLogger("socialhub.init_sheets")


async def initialize(store: TabularStore) -> None:
    for table, headers in TABLE_HEADERS.items():
        await store.write_headers(table, headers)


def build_store(config: Settings) -> SheetsTabularStore:
    if not config.mirror_enabled:
        raise ValueError("GOOGLE_SPREADSHEET_ID is not set")
    info = config.service_account_info()
    if info is None:
        raise ValueError(
            "Set GOOGLE_SERVICE_ACCOUNT_JSON or GOOGLE_SERVICE_ACCOUNT_FILE"
        )
    return SheetsTabularStore(config.google_spreadsheet_id, service_account_info=info)


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        store = build_store(settings)
    except ValueError as e:
        logger.error("Cannot initialize spreadsheet: %s", str(e))
        return 1

    asyncio.run(initialize(store))
    logger.info("Spreadsheet %s initialized", settings.google_spreadsheet_id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
