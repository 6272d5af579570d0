"""Temporal worker hosting the single-player game."""
import asyncio
import logging
from temporalio.worker import Worker

from minerace import activities
from minerace.client_provider import get_temporal_client
from minerace.config import ServerConfig
from minerace.workflows import MinesweeperWorkflow

logger = logging.getLogger(__name__)


async def main():
    """Start the Temporal worker."""
    config = ServerConfig.from_env()
    logging.basicConfig(level=config.log_level)

    client = await get_temporal_client()
    worker = Worker(
        client,
        task_queue=config.task_queue,
        workflows=[MinesweeperWorkflow],
        activities=[
            activities.create_game_board,
            activities.reveal_cell,
            activities.toggle_flag,
        ],
    )

    logger.info(f"Worker started, listening on task queue: {config.task_queue}")
    await worker.run()


if __name__ == "__main__":
    asyncio.run(main())
