import logging
import os
from logging.handlers import RotatingFileHandler

EVENTS_LEVEL_NUM = 38
DEFAULT_LOG_BACKUP_COUNT = 10


_NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "aiosqlite",
    "alembic.runtime.migration",
)


def quiet_driver_loggers(level: int = logging.WARNING) -> None:
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def configure_logging(level: str = "INFO", fmt: str | None = None) -> None:
    """Install a single stream handler on the poolscore logger tree."""
    logger = logging.getLogger("poolscore")
    logger.setLevel(level.upper())
    if not any(getattr(h, "_poolscore", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                fmt or "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handler._poolscore = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    quiet_driver_loggers()


def setup_events_logger(full_path, events_retention_size):
    logging.addLevelName(EVENTS_LEVEL_NUM, "EVENT")

    logger = logging.getLogger("poolscore.event")
    logger.setLevel(EVENTS_LEVEL_NUM)
    logger.propagate = False

    def event(self, message, *args, **kws):
        if self.isEnabledFor(EVENTS_LEVEL_NUM):
            self._log(EVENTS_LEVEL_NUM, message, args, **kws)

    logging.Logger.event = event

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(
        os.path.join(full_path, "events.log"),
        maxBytes=events_retention_size,
        backupCount=DEFAULT_LOG_BACKUP_COUNT,
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(EVENTS_LEVEL_NUM)
    logger.addHandler(file_handler)

    return logger


def configure_from_settings(settings, level: str | None = None) -> None:
    """Stream logging at the configured level, plus events.log when ``events_dir`` is set."""
    cfg = settings.logging
    configure_logging(level or cfg.level)
    if cfg.events_dir:
        os.makedirs(cfg.events_dir, exist_ok=True)
        setup_events_logger(cfg.events_dir, cfg.events_retention_bytes)
