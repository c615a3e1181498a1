"""
Conversion pipeline

read all input -> [decode + -cid: address raw input, stop]
               -> terminal guard (encode, only when bytes will be written)
               -> convert
               -> [encode + -cid: address produced SSZ, stop]
               -> write all output

A run ends in exactly one of two terminal actions, WRITE_OUTPUT or
PRINT_IDENTIFIER. Nothing is written before the whole conversion succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO

from rewards_ssz.contracts.rewards_file import (
    EmissionError,
    MalformedRewardsFileError,
    ProofGenerationError,
)
from rewards_ssz.control.config import ConverterConfig, Direction
from rewards_ssz.control.endpoints import read_all, write_all
from rewards_ssz.control.errors import (
    CodecFailureError,
    MalformedInputError,
    StreamIOError,
    TerminalPolicyError,
)
from rewards_ssz.control.terminal_guard import check_binary_sink
from rewards_ssz.core import codec
from rewards_ssz.core.ipfs_cid import single_file_dir_cid

logger = logging.getLogger(__name__)


class TerminalAction(str, Enum):
    WRITE_OUTPUT = "write_output"
    PRINT_IDENTIFIER = "print_identifier"


@dataclass(frozen=True)
class ConversionOutcome:
    action: TerminalAction
    payload: bytes = b""
    identifier: str = ""


def encode_text(data: bytes) -> bytes:
    """JSON text -> SSZ binary."""
    try:
        rewards_file = codec.from_text(data)
    except MalformedRewardsFileError as e:
        raise MalformedInputError("parse JSON", str(e), Direction.ENCODE) from e
    try:
        return codec.emit(rewards_file)
    except EmissionError as e:
        raise CodecFailureError("emit SSZ", str(e), Direction.ENCODE) from e


def decode_binary(data: bytes, with_proofs: bool = False) -> bytes:
    """SSZ binary -> JSON text, optionally with merkle proofs attached."""
    try:
        rewards_file = codec.ingest(data)
    except MalformedRewardsFileError as e:
        raise MalformedInputError("parse SSZ", str(e), Direction.DECODE) from e
    if with_proofs:
        try:
            codec.proofs(rewards_file)
        except ProofGenerationError as e:
            raise CodecFailureError("generate proofs", str(e), Direction.DECODE) from e
    try:
        return codec.to_text(rewards_file)
    except EmissionError as e:
        raise CodecFailureError("emit JSON", str(e), Direction.DECODE) from e


def _identify(data: bytes, filename: str, direction: Direction) -> ConversionOutcome:
    try:
        identifier = single_file_dir_cid(data, filename)
    except ValueError as e:
        raise CodecFailureError("compute CID", str(e), direction) from e
    logger.info("CID of %d SSZ bytes as %r: %s", len(data), filename, identifier)
    return ConversionOutcome(TerminalAction.PRINT_IDENTIFIER, identifier=identifier)


def run_pipeline(config: ConverterConfig, source: BinaryIO, sink: BinaryIO) -> ConversionOutcome:
    """
    Run one conversion up to (not including) its terminal action.

    Raises:
        ConversionError: any failure, tagged with its stage and direction
    """
    direction = config.direction
    data = read_all(source)
    logger.info("Read %d bytes (%s)", len(data), direction.value)

    if direction is Direction.DECODE:
        if config.reports_identity:
            # raw input is addressed as-is, it is never parsed on this path
            return _identify(data, config.cid_filename, direction)
        output = decode_binary(data, with_proofs=config.with_proofs)
        return ConversionOutcome(TerminalAction.WRITE_OUTPUT, payload=output)

    if not config.reports_identity:
        policy = check_binary_sink(sink)
        if not policy.allowed:
            logger.info("Output refused (%s): %s", policy.code, policy.details)
            raise TerminalPolicyError("check output", policy.message, direction)

    output = encode_text(data)
    if config.reports_identity:
        return _identify(output, config.cid_filename, direction)
    return ConversionOutcome(TerminalAction.WRITE_OUTPUT, payload=output)


def apply_outcome(outcome: ConversionOutcome, sink: BinaryIO, stdout: BinaryIO) -> None:
    """
    Perform the terminal action of a run.

    The CID line always goes to the process stdout, never to the -output sink.
    """
    if outcome.action is TerminalAction.PRINT_IDENTIFIER:
        try:
            stdout.write(outcome.identifier.encode("ascii") + b"\n")
            stdout.flush()
        except OSError as e:
            raise StreamIOError("print CID", str(e)) from e
        return
    # only an -output file is ours to truncate, never the caller's stdout
    write_all(sink, outcome.payload, truncate=sink is not stdout)
    logger.info("Wrote %d bytes", len(outcome.payload))
