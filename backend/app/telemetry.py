from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Literal, Protocol

import structlog

TELEMETRY_LOGGER_NAME = "global_gist.telemetry"

# Article bodies, comment text and raw payloads never leave the process in telemetry.
_SENSITIVE_ATTRIBUTE_TOKENS: frozenset[str] = frozenset(
    {
        "api_key",
        "authorization",
        "body",
        "content",
        "cookie",
        "payload",
        "prompt",
        "secret",
        "text",
        "token",
    }
)
_MAX_STRING_LENGTH = 160

TelemetryValue = bool | int | float | str | None


class TelemetrySink(Protocol):
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        ...


class NoOpTelemetrySink:
    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        return None


class StructuredLogTelemetrySink:
    """Writes each event as one structlog record on the telemetry logger."""

    def __init__(self, logger_name: str = TELEMETRY_LOGGER_NAME) -> None:
        self._logger = structlog.get_logger(logger_name)

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self._logger.info("telemetry", telemetry_event=event_name, **dict(attributes))


@dataclass(frozen=True)
class TelemetryClient:
    enabled: bool
    sink: TelemetrySink

    @classmethod
    def disabled(cls) -> TelemetryClient:
        return cls(enabled=False, sink=NoOpTelemetrySink())

    def emit(self, event_name: str, **attributes: Any) -> None:
        if self.enabled:
            self.sink.emit(event_name=event_name, attributes=sanitize_attributes(attributes))

    @contextmanager
    def measure(self, event_prefix: str, **attributes: Any) -> Iterator[dict[str, Any]]:
        """
        Emit `<prefix>.start`, then `<prefix>.finish` or `<prefix>.error` with `duration_ms`.

        The yielded dict collects attributes known only once the work is done (a status
        code, say); they are merged into the closing event.
        """
        outcome: dict[str, Any] = {}
        started_at = perf_counter()
        self.emit(f"{event_prefix}.start", **attributes)
        try:
            yield outcome
        except Exception as exc:
            self.emit(
                f"{event_prefix}.error",
                **{
                    **attributes,
                    "duration_ms": _elapsed_ms(started_at),
                    "error_type": type(exc).__name__,
                    **outcome,
                },
            )
            raise
        self.emit(
            f"{event_prefix}.finish",
            **{**attributes, "duration_ms": _elapsed_ms(started_at), **outcome},
        )


def build_telemetry_client(*, enabled: bool, sink: Literal["none", "log"]) -> TelemetryClient:
    if not enabled or sink == "none":
        return TelemetryClient.disabled()
    if sink == "log":
        return TelemetryClient(enabled=True, sink=StructuredLogTelemetrySink())

    logging.getLogger(TELEMETRY_LOGGER_NAME).warning(
        "unsupported telemetry sink requested; disabling telemetry sink=%s",
        sink,
    )
    return TelemetryClient.disabled()


def sanitize_attributes(attributes: Mapping[str, Any]) -> dict[str, TelemetryValue]:
    sanitized: dict[str, TelemetryValue] = {}
    for raw_key, raw_value in attributes.items():
        key = str(raw_key).strip().lower()
        if not key:
            continue
        if any(token in key for token in _SENSITIVE_ATTRIBUTE_TOKENS):
            sanitized[key] = "[redacted]"
        else:
            sanitized[key] = _scalar(raw_value)
    return sanitized


def _scalar(value: Any) -> TelemetryValue:
    if value is None or isinstance(value, bool | int | float):
        return value
    if isinstance(value, str):
        compact = " ".join(value.split())
        if len(compact) > _MAX_STRING_LENGTH:
            return f"{compact[:_MAX_STRING_LENGTH]}..."
        return compact
    if isinstance(value, list | tuple | set | frozenset):
        return len(value)
    return type(value).__name__


def _elapsed_ms(started_at: float) -> int:
    return int((perf_counter() - started_at) * 1000)
