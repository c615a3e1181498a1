"""
Conversion errors

Every failure the driver can hit maps to one of these. None is retried;
cli.main() turns them into a stderr diagnostic and exit status 1.
"""

from __future__ import annotations

from typing import Optional

from rewards_ssz.control.config import Direction


class ConversionError(Exception):
    """Base exception for a failed conversion run."""

    kind = "conversion"

    def __init__(self, stage: str, message: str, direction: Optional[Direction] = None):
        self.stage = stage
        self.direction = direction
        self.message = message
        super().__init__(self.describe())

    def describe(self) -> str:
        where = self.stage if self.direction is None else f"{self.stage} ({self.direction.value})"
        return f"{self.kind} error during {where}: {self.message}"


class EndpointConfigError(ConversionError):
    """An input or output path could not be opened."""
    kind = "configuration"


class MalformedInputError(ConversionError):
    """Input bytes are not a valid rewards file in the expected encoding."""
    kind = "malformed input"


class CodecFailureError(ConversionError):
    """The codec could not emit output or derive proofs."""
    kind = "codec"


class StreamIOError(ConversionError):
    """Reading, writing or flushing an endpoint failed."""
    kind = "I/O"


class TerminalPolicyError(ConversionError):
    """Binary output was directed at an interactive terminal."""
    kind = "policy"
