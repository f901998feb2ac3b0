import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database.postgres import initialize_db

async def create_tables():
    """
    Create all database tables based on the SQLAlchemy models.
    """
    await initialize_db()

import asyncio
asyncio.run(create_tables())
