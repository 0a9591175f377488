import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from .config import settings

# Third-party loggers that log every provider request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def _build_handlers(formatter: logging.Formatter, level: int) -> list:
    handlers = []

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers.append(console)

    if settings.LOG_FILE:
        try:
            Path(settings.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
            rotating = logging.handlers.RotatingFileHandler(
                filename=settings.LOG_FILE,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding="utf-8"
            )
            rotating.setLevel(level)
            rotating.setFormatter(formatter)
            handlers.append(rotating)
        except OSError as e:
            # Console logging still works without the file
            logging.getLogger(settings.APP_NAME).warning(f"File logging disabled: {e}")

    return handlers


def setup_logging() -> logging.Logger:
    """
    Configure the application logger.

    Messages go to the console and, when LOG_FILE is set, to a rotating file.
    Request bodies, tokens and API keys are never passed to these loggers.

    Returns:
        logging.Logger: Root application logger
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    formatter = logging.Formatter(fmt=settings.LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    app_logger = logging.getLogger(settings.APP_NAME)
    app_logger.setLevel(level)
    app_logger.handlers.clear()
    for handler in _build_handlers(formatter, level):
        app_logger.addHandler(handler)
    app_logger.propagate = False

    # httpx logs full request URLs at INFO
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return app_logger


logger = setup_logging()


def get_logger(module_name: Optional[str] = None) -> logging.Logger:
    """
    Get a child of the application logger.

    Args:
        module_name: Name of the module (typically __name__)
    """
    if module_name:
        return logging.getLogger(f"{settings.APP_NAME}.{module_name}")
    return logger


def log_startup_info():
    """Log which models and providers this instance will use"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Debug Mode: {settings.DEBUG}")
    logger.info(f"Chat Model: {settings.GROQ_CHAT_MODEL} (Groq key set: {bool(settings.GROQ_API_KEY)})")
    logger.info(f"Sentiment Model: {settings.GROQ_SENTIMENT_MODEL}")
    logger.info(f"Fallback Model: {settings.GEMINI_MODEL} (Gemini key set: {bool(settings.GEMINI_API_KEY)})")
    logger.info(f"Embedding Model: {settings.EMBEDDING_MODEL}")
    logger.info(f"Vector Store: {'supabase' if settings.SUPABASE_URL else 'built-in fallback context'}")
    logger.info(f"Log Level: {settings.LOG_LEVEL}")
    logger.info("=" * 60)


def log_shutdown_info():
    logger.info(f"Shutting down {settings.APP_NAME}")
