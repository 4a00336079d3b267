import logging
import sys
import time

from pythonjsonlogger.json import JsonFormatter

# Record attributes that must never leave the process in clear text.
SENSITIVE_FIELDS = frozenset({"sin", "email", "code", "token", "session_token"})


class UTCJsonFormatter(JsonFormatter):
    converter = time.gmtime


class RedactSecretsFilter(logging.Filter):
    """Blank out sensitive `extra=` fields that slipped into a log call."""

    def filter(self, record: logging.LogRecord) -> bool:
        for field in SENSITIVE_FIELDS:
            if field in record.__dict__:
                setattr(record, field, "[redacted]")
        return True


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
    handler.setFormatter(UTCJsonFormatter(fmt))
    handler.addFilter(RedactSecretsFilter())
    root.addHandler(handler)

    logging.getLogger("httpx").setLevel("WARNING")
