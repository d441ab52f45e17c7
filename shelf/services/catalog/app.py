"""Entrypoint script to start the Catalog service."""

import asyncio, os, logging
from shelf.lib.common.cursor import CURSOR_MAX_AGE_MS, CursorConfig
from shelf.services.catalog import Catalog

level = os.getenv("LOGLEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s"
)

async def main():
    """Bootstrap the Catalog service and block until shutdown."""
    dsn = os.environ["DSN"]
    cursor_config = CursorConfig(
        secret=os.getenv("CURSOR_SECRET"),
        max_age_ms=int(os.getenv("CURSOR_MAX_AGE_MS", CURSOR_MAX_AGE_MS)),
    )

    catalog = Catalog(
        dsn=dsn,
        cursor_config=cursor_config,
        api_host=os.getenv("API_HOST", "0.0.0.0"),
        api_port=int(os.getenv("API_PORT", "8080")),
    )
    await catalog.start()

    logging.info("Catalog started")
    try:
        await asyncio.Event().wait()              # keep running
    finally:
        await catalog.stop()
        logging.info("Catalog stopped")

if __name__ == "__main__":
    asyncio.run(main())
