import logging
import sys
from pythonjsonlogger.json import JsonFormatter
from app.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """
    Structured (JSON) logging on the root logger.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # clear handlers if reloaded
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    fmt = JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
    )
    handler.setFormatter(fmt)
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("uvicorn.error").setLevel(level)

    # boto/pymongo are chatty at DEBUG
    for noisy in ("botocore", "boto3", "s3transfer", "pymongo", "httpx"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))
