"""extractdb entrypoint.

Run with:
  python -m extractdb
"""

import logging
import os
import sys

import uvicorn


def main() -> None:
    level = os.getenv("EXTRACTDB_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    host = os.getenv("EXTRACTDB_HOST", "0.0.0.0")
    port = int(os.getenv("EXTRACTDB_PORT", "8000"))
    reload = os.getenv("EXTRACTDB_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("extractdb.app:app", host=host, port=port, reload=reload, log_level=level.lower())

if __name__ == "__main__":
    main()
