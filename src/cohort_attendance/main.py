from __future__ import annotations

import importlib
import logging

from dotenv import load_dotenv

from config import get_settings_module

from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int = logging.INFO) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)


def create_container() -> Container:
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    db_config = getattr(settings, "DB_CONFIG")
    debug = bool(getattr(settings, "DEBUG", False))
    configure_logging(getattr(settings, "LOG_LEVEL", "DEBUG" if debug else "INFO"))

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config)
        if debug:
            logger.debug("schema ready (tables=%s)", len(list_tables(db_config)))

    return build_container(
        db_config=db_config,
        streams=getattr(settings, "STREAMS"),
        batch_size=int(getattr(settings, "NOTIFICATION_BATCH_SIZE", 10)),
        batch_delay=float(getattr(settings, "NOTIFICATION_BATCH_DELAY_SECONDS", 1.0)),
        claim_timeout=float(getattr(settings, "NOTIFICATION_CLAIM_TIMEOUT_SECONDS", 900)),
        allow_reprovision=bool(getattr(settings, "ALLOW_PARTITION_REPROVISION", False)),
    )
