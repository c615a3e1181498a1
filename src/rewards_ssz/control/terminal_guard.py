"""
Terminal safety guard

Binary SSZ output must never land on an interactive terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, BinaryIO, Dict


@dataclass(frozen=True)
class PolicyResult:
    allowed: bool
    code: str
    message: str
    details: Dict[str, Any]


def _allowed() -> PolicyResult:
    return PolicyResult(
        allowed=True,
        code="POLICY_OK",
        message="Output is not a terminal",
        details={},
    )


def _forbidden(code: str, message: str, details: Dict[str, Any] | None = None) -> PolicyResult:
    return PolicyResult(
        allowed=False,
        code=code,
        message=message,
        details=details or {},
    )


def check_binary_sink(sink: BinaryIO) -> PolicyResult:
    """Refuse sinks that are interactive terminals; files, pipes and buffers pass."""
    isatty = getattr(sink, "isatty", None)
    if isatty is not None and isatty():
        return _forbidden(
            "SINK_IS_TERMINAL",
            "Refusing to write SSZ to terminal",
            {"sink": getattr(sink, "name", repr(sink))},
        )
    return _allowed()
