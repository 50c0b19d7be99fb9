"""Main entry point for running the Ocean Explorer simulation headless."""

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

from explorer.config import load_config
from explorer.content import ContentLoader
from explorer.engine import GameEngine
from explorer.errors import ContentError
from explorer.view import GameView

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('explorer.log')
    ]
)
logger = logging.getLogger(__name__)

STATUS_INTERVAL = 30  # seconds between status lines


async def main():
    """Load content and the save, then run rounds until interrupted."""
    load_dotenv()
    content_dir = os.getenv('EXPLORER_CONTENT_DIR', 'content')

    try:
        content = ContentLoader(content_dir).load()
    except ContentError as e:
        logger.error(f"Failed to load content: {e}")
        sys.exit(1)

    engine = GameEngine(content, load_config())
    view = GameView(engine.ctx)
    await engine.initialize()

    report = await engine.load()
    if report is not None:
        logger.info(view.format_offline_report(report))

    engine.start()
    try:
        while True:
            await asyncio.sleep(STATUS_INTERVAL)
            logger.info("\n" + view.format_status())
    finally:
        await engine.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
