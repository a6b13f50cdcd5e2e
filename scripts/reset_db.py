from __future__ import annotations

import asyncio
import logging
import os

from qcscan.db.session import DEFAULT_SQLITE_PATH, StorageManager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


async def _recreate(sqlite_path: str) -> None:
    manager = StorageManager(f"sqlite+aiosqlite:///{sqlite_path}")
    handle = await manager.initialize()
    try:
        ok = await handle.ping()
    finally:
        await manager.close()
    print(f"Reset database at {sqlite_path} ping={'ok' if ok else 'failed'}")


def main() -> None:
    sqlite_path = os.getenv("SQLITE_PATH", DEFAULT_SQLITE_PATH)
    data_dir = os.path.dirname(sqlite_path) or "."

    for suffix in ("", "-wal", "-shm", "-journal"):
        if os.path.exists(sqlite_path + suffix):
            os.remove(sqlite_path + suffix)

    os.makedirs(data_dir, exist_ok=True)
    asyncio.run(_recreate(sqlite_path))


if __name__ == "__main__":
    main()
