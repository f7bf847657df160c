from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import TextIO

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from backend.app.config import AppSettings

LOG_FILE_NAME = "global-gist.log"
TELEMETRY_LOG_FILE_NAME = "global-gist-telemetry.log"
ROOT_LOGGER_NAME = "global_gist"
REDACTED = "[redacted]"
# Chatty client libraries only reach the console at WARNING and above.
_QUIET_LIBRARY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "google_genai")


class SecretMasker:
    """structlog processor replacing configured secret values anywhere in string fields."""

    def __init__(self, secrets: list[str]) -> None:
        self._secrets = [secret for secret in secrets if secret]

    def __call__(
        self,
        _logger: WrappedLogger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        if not self._secrets:
            return event_dict
        for key, value in event_dict.items():
            if isinstance(value, str):
                event_dict[key] = self.mask(value)
        return event_dict

    def mask(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, REDACTED)
        return text


def configure_application_logging(settings: AppSettings) -> Path:
    """
    Route the `global_gist` logger tree to a console handler and a JSON file.

    Console output honours `log_level`; the file always receives DEBUG. Telemetry
    events get their own file so they can be shipped or rotated separately.
    """
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    log_file = settings.log_dir / LOG_FILE_NAME
    telemetry_log_file = settings.log_dir / TELEMETRY_LOG_FILE_NAME
    masker = SecretMasker([settings.gemini_api_key or ""])

    _configure_structlog()

    root = _fresh_logger(ROOT_LOGGER_NAME, logging.DEBUG)
    root.addHandler(
        _stream_handler(sys.stdout, _resolve_log_level(settings.log_level), masker)
    )
    root.addHandler(_file_handler(log_file, logging.DEBUG, masker))

    telemetry = _fresh_logger(f"{ROOT_LOGGER_NAME}.telemetry", logging.INFO)
    telemetry.addHandler(_file_handler(telemetry_log_file, logging.INFO, masker))

    for library_logger in _QUIET_LIBRARY_LOGGERS:
        logging.getLogger(library_logger).setLevel(logging.WARNING)

    root.info(
        "logging configured console_level=%s path=%s telemetry_path=%s",
        settings.log_level.upper(),
        log_file,
        telemetry_log_file,
    )
    return log_file


def _resolve_log_level(raw_level: str) -> int:
    resolved = logging.getLevelName(raw_level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _fresh_logger(name: str, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    return logger


def _stream_handler(stream: TextIO, level: int, masker: SecretMasker) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[
                masker,
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.dev.ConsoleRenderer(colors=_use_colors(stream)),
            ],
        )
    )
    return handler


def _file_handler(path: Path, level: int, masker: SecretMasker) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(),
            processors=[
                _add_source_location,
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                masker,
                structlog.processors.JSONRenderer(sort_keys=True),
            ],
        )
    )
    return handler


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
    ]


def _add_source_location(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        event_dict["module"] = record.module
        event_dict["lineno"] = record.lineno
    return event_dict


def _use_colors(stream: TextIO) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    try:
        return stream.isatty()
    except (AttributeError, OSError, ValueError):
        return False
