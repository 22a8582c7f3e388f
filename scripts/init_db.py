#!/usr/bin/env python3
import asyncio
import sys

from collector.database import ConnectionPool, StorageError, initialize_schema
from collector.database.config import DB_CONFIG

async def create_tables():
    pool = ConnectionPool(min_size=1, max_size=1)
    try:
        print(f"Creating database schema on {DB_CONFIG['host']}:{DB_CONFIG['port']}/{DB_CONFIG['database']}...")
        await pool.open()
        await initialize_schema(pool)
        print("Database schema created successfully")
    except StorageError as e:
        print(f"Error creating schema: {e}")
        sys.exit(1)
    finally:
        await pool.close()

if __name__ == "__main__":
    asyncio.run(create_tables())
