"""
Health probe entrypoint: python -m recipe_manager

Builds the external service clients from the environment, probes each
dependency once and logs the resulting health snapshot.
"""

import asyncio
import json

from loguru import logger

from recipe_manager.clients.registry import build_external_services
from recipe_manager.services.outcomes import CallContext
from recipe_manager.settings import global_settings
from recipe_manager.utils import configure_logging


async def main() -> None:
    configure_logging(global_settings.log_level)
    logger.info("Probing external services...")

    context = CallContext()
    async with build_external_services(global_settings) as services:
        media = await services.media_manager.get_health(context)
        logger.info(f"Media manager status: {media.status.value}")

        for client in (
            services.recipe_scraper,
            services.user_management,
            services.notifications,
            services.media_manager,
        ):
            logger.info(
                f"{client.service_id}: "
                f"{'enabled' if client.is_service_available() else 'disabled'}"
            )

        logger.info(json.dumps(services.health(), indent=2, default=str))


if __name__ == "__main__":
    asyncio.run(main())
