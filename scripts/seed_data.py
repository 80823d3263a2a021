"""
Script to seed protocol tasks and achievement definitions into the database.
Run with: python -m scripts.seed_data [--force]

--force rewrites the catalog rows in place; entries and unlocks are kept.
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from questlog.core.database import engine, session_scope
from questlog.models import Base
from questlog.services.seed_data import seed_achievements, seed_tasks


async def seed(force: bool = False):
    """Create tables if needed, then seed tasks and achievements."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_scope() as session:
        tasks_written = await seed_tasks(session, force=force)
        achievements_written = await seed_achievements(session, force=force)

    if tasks_written or achievements_written:
        print(f"Wrote {tasks_written} tasks and {achievements_written} achievement definitions.")
    else:
        print("Nothing to seed. Use --force to refresh the catalog.")

    await engine.dispose()


def main():
    force = "--force" in sys.argv
    asyncio.run(seed(force))


if __name__ == "__main__":
    main()
