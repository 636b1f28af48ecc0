import json
import logging
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from typing import Optional


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger()
    logger.setLevel(level.upper())

    # Idempotent: create_app may run more than once per process (tests)
    if getattr(logger, "_clinic_configured", False):
        return logger

    console = logging.StreamHandler()
    console.setFormatter(JsonFormatter())
    logger.addHandler(console)

    # Log file rotates daily, keeps 14 days
    if log_file:
        handler = TimedRotatingFileHandler(
            filename=log_file,
            when="midnight",
            backupCount=14,
            encoding="utf-8",
        )
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)

    logger._clinic_configured = True
    return logger
