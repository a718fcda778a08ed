"""
Printcore - print production pipeline
Turns approved room-mockup designs into print-ready files: upscaled
PRINT masters and PRINT_FINAL renders matching the customer's preview
"""

import os
from pathlib import Path
from loguru import logger
from dotenv import load_dotenv

from .config import AppConfig, load_config


class PrintPipeline:
    """Wired-up services sharing one database, storage and fetcher"""

    def __init__(self, config, session_factory, fetcher, storage, print_masters, final_renderer):
        self.config = config
        self.session_factory = session_factory
        self.fetcher = fetcher
        self.storage = storage
        self.print_masters = print_masters
        self.final_renderer = final_renderer


def create_pipeline(config: AppConfig = None, provider=None, storage=None,
                    fetcher=None, session_factory=None) -> PrintPipeline:
    """Pipeline factory"""

    # Load environment variables
    load_dotenv()

    if config is None:
        config = load_config(os.getenv('PRINTCORE_ENV', 'development'))

    # Configure logging
    setup_logging(config)

    from .db import create_db_engine, create_session_factory, init_db
    from .fetch import ImageFetcher
    from .final_render import FinalRenderer
    from .print_master import PrintMasterService
    from .sizes import get_catalog
    from .storage import create_storage
    from .upscale import create_upscaler

    if session_factory is None:
        engine = create_db_engine(config.DATABASE_URL)
        init_db(engine)
        session_factory = create_session_factory(engine)

    fetcher = fetcher or ImageFetcher(timeout=config.HTTP_TIMEOUT)
    storage = storage or create_storage(config)
    provider = provider or create_upscaler(config)
    catalog = get_catalog()

    print_masters = PrintMasterService(session_factory, provider, fetcher, storage, config, catalog)
    final_renderer = FinalRenderer(session_factory, print_masters, fetcher, storage, config, catalog)

    logger.info(f"Print pipeline initialized in {config.ENVIRONMENT} mode "
                f"(storage={config.STORAGE_BACKEND}, upscaler={provider.name})")

    return PrintPipeline(config, session_factory, fetcher, storage, print_masters, final_renderer)


_pipeline = None


def get_pipeline() -> PrintPipeline:
    """Get the default pipeline, creating it on first use"""
    global _pipeline
    if _pipeline is None:
        from .config import get_config
        _pipeline = create_pipeline(get_config())
    return _pipeline


_log_sink_id = None


def setup_logging(config: AppConfig):
    """Configure loguru logging"""
    global _log_sink_id
    log_file = config.LOG_FILE

    if _log_sink_id is not None:
        logger.remove(_log_sink_id)

    # Ensure logs directory exists
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    _log_sink_id = logger.add(
        log_file,
        rotation="1 day",
        retention="30 days",
        level=config.LOG_LEVEL,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}"
    )
