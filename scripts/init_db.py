#!/usr/bin/env python3
"""Initialize the database and create tables."""

import asyncio

from marketlens.storage.database import init_database


async def main():
    print("Initializing database...")
    db = await init_database()
    print("Database initialized successfully!")
    print("Tables created: candles, trades, funding_rates")
    await db.close()


if __name__ == "__main__":
    asyncio.run(main())
