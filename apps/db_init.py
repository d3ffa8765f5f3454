"""One-off entry point creating the notes schema (used by the db-init container)."""

from __future__ import annotations

import asyncio
import sys

from libs.db import init_db
from libs.logging import setup_logging


def main() -> None:
    setup_logging()
    try:
        asyncio.run(init_db())
    except Exception as exc:  # pragma: no cover - reported to the container runtime
        print(exc, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
