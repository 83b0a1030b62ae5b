from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tradetracker.api.routes import analytics, parse
from tradetracker.core import settings
from tradetracker.core.settings import ServiceConfig
from tradetracker.integration.vision import VisionClient
from tradetracker.logger import get_logger, setup_logging
from tradetracker.manager import ParserService
from tradetracker.services.scanning import ReceiptScanPipeline

logger = get_logger(__name__)


def create_app(config: ServiceConfig | None = None) -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        service_config = config or ServiceConfig.from_env()
        if not service_config.openai_api_key:
            logger.info("OPENAI_API_KEY not set. Transactions will be parsed with pattern matching only.")
        if not service_config.vision_api_key:
            logger.warning("GOOGLE_VISION_API_KEY not set. Receipt scanning will be unavailable.")

        service = ParserService(config=service_config)
        vision = VisionClient(api_key=service_config.vision_api_key, timeout=service_config.vision_timeout)
        scanner = ReceiptScanPipeline(service=service, vision=vision)

        app.state.service = service
        app.state.scanner = scanner

        logger.info("Services initialized.")
        yield
        logger.info("Service shutting down.")
        await scanner.aclose()
        await service.aclose()

    app = FastAPI(title="TradeTracker Parser", lifespan=lifespan)

    app.include_router(parse.router)
    app.include_router(analytics.router)

    return app


app = create_app()
