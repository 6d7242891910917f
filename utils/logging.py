import atexit
import json
import logging
import logging.handlers
import queue
from pathlib import Path

from config.config_loader import ConfigLoader

_queue_listener: logging.handlers.QueueListener | None = None
_atexit_registered = False

# Structured fields copied from ``extra`` into the JSON record when present
_EXTRA_FIELDS = (
    "guild_id",
    "user_id",
    "channel_id",
    "thread_id",
    "message_id",
    "trace_id",
    "nonce",
    "target_channel_id",
    "health",
)


class CustomJsonFormatter(logging.Formatter):
    """One JSON object per line, carrying any known ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.name,
            "funcName": record.funcName,
            "lineno": record.lineno,
            "message": record.getMessage(),
        }
        payload.update(
            (name, getattr(record, name)) for name in _EXTRA_FIELDS if hasattr(record, name)
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(log_file: str = "logs/bot.log") -> None:
    """
    Route all records through a queue to the daily ``bot.log``, the
    error-only ``errors/errors.jsonl`` and the console.

    Calling it again replaces the previous listener.
    """
    global _queue_listener

    logging_config = ConfigLoader.load_config().get("logging", {}) or {}
    level_name = str(logging_config.get("level", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    if _queue_listener:
        _queue_listener.stop()
        _queue_listener = None

    (Path(log_file).parent / "errors").mkdir(parents=True, exist_ok=True)

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=1000)
    queue_handler = logging.handlers.QueueHandler(log_queue)
    queue_handler.setLevel(log_level)
    root_logger.addHandler(queue_handler)

    _queue_listener = _build_queue_listener(log_queue, log_level, log_file)
    _queue_listener.start()
    _register_logging_shutdown()

    # discord.py is chatty at INFO (gateway resumes, heartbeats)
    logging.getLogger("discord").setLevel(logging.WARNING)


def _daily_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        backupCount=30,
        utc=True,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    return handler


def _build_queue_listener(
    log_queue: queue.Queue, log_level: int, log_file: str
) -> logging.handlers.QueueListener:
    log_path = Path(log_file)
    console = logging.StreamHandler()
    console.setLevel(log_level)
    handlers = (
        _daily_handler(log_path, log_level),
        _daily_handler(log_path.parent / "errors" / "errors.jsonl", logging.ERROR),
        console,
    )

    formatter = CustomJsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    for handler in handlers:
        handler.setFormatter(formatter)

    return logging.handlers.QueueListener(log_queue, *handlers, respect_handler_level=True)


def _register_logging_shutdown() -> None:
    """Flush queued records at interpreter exit."""
    global _atexit_registered
    if _atexit_registered:
        return

    def _stop_listener() -> None:
        global _queue_listener
        if _queue_listener:
            _queue_listener.stop()
            _queue_listener = None

    atexit.register(_stop_listener)
    _atexit_registered = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


setup_logging()
