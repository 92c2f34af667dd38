from __future__ import annotations

import asyncio

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.reference_data import seed_reference_data
from app.db.session import SessionLocal, dispose_engine


async def _seed() -> dict[str, int]:
    try:
        async with SessionLocal.begin() as session:
            return await seed_reference_data(session)
    finally:
        await dispose_engine()


def main() -> int:
    configure_logging(get_settings().log_level)
    asyncio.run(_seed())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
