"""Command-line entry point: print a user's practice summary"""
import asyncio
import logging
import sys

from dsa_tracker.config import LOG_LEVEL, validate_config
from dsa_tracker.db.connection import Database
from dsa_tracker.db.postgres_store import PostgresStore
from dsa_tracker.gamification.achievement_system import format_badge_display
from dsa_tracker.gamification.streak_system import format_streak_display
from dsa_tracker.services.container import ServiceContainer

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


async def main(user_id: str) -> None:
    """Load the user's data and print stats, streak, badges and a message"""
    db = Database()
    container = ServiceContainer(store=PostgresStore(db))
    try:
        logger.info("Validating configuration...")
        validate_config()

        logger.info("Initializing database connection pool...")
        await db.init_pool()

        session = await container.sign_in(user_id)
        stats = session.get_stats()
        today = session.get_today_progress()

        print(f"Level {stats.level} ({stats.total_xp} XP, {stats.xp_to_next_level} to next level)")
        print(f"Solved {stats.solved_problems}/{stats.total_problems} ({stats.progress_percentage}%)")
        print(f"Today: {today.solved}/{today.goal} solved, {today.revised} revised")
        print(format_streak_display(session.streak))
        print(format_badge_display(session.user_badges))
        print(session.get_motivational_message())

    finally:
        container.sign_out()
        await db.close_pool()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python -m dsa_tracker.main <user_id>", file=sys.stderr)
        sys.exit(2)
    asyncio.run(main(sys.argv[1]))
