import asyncio
import logging

from practice_engine.config import settings
from practice_engine.factory import close_app, create_app

logging.basicConfig(level=settings.LOG_LEVEL)
log = logging.getLogger(__name__)


async def main():
    app = await create_app()
    try:
        for variant, machine in app.machines.items():
            stats = machine.statistics
            log.info(
                "%s: %d sessions, all-time accuracy %d%%",
                variant.value,
                stats.total_sessions,
                stats.all_time_accuracy,
            )
        pending = app.ledger.get_pending_uploads()
        log.info(
            "pending uploads: %d items, %d collections",
            len(pending["items"]),
            len(pending["collections"]),
        )
    finally:
        await close_app(app)
        log.info("Shutdown complete.")


if __name__ == "__main__":
    asyncio.run(main())
