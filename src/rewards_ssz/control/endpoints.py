"""
Input/output endpoint resolution

The process stdio streams are supplied by the caller; named paths override
them. Files opened here are closed on every exit path, the caller's stdio is
only flushed.
"""

from __future__ import annotations

import logging
import os
import stat
from contextlib import ExitStack, contextmanager
from typing import BinaryIO, Iterator, Tuple

from rewards_ssz.control.config import ConverterConfig
from rewards_ssz.control.errors import EndpointConfigError, StreamIOError

logger = logging.getLogger(__name__)


def _close(stream: BinaryIO, label: str) -> None:
    try:
        stream.close()
    except OSError as e:
        raise StreamIOError(f"close {label}", str(e)) from e


@contextmanager
def open_endpoints(
    config: ConverterConfig,
    stdin: BinaryIO,
    stdout: BinaryIO,
) -> Iterator[Tuple[BinaryIO, BinaryIO]]:
    """
    Yield (source, sink) for the run.

    The output file is created if missing and opened for writing without
    truncation; write_all() cuts any stale tail once the new content is in
    place, so a failed run leaves an existing file untouched.

    Raises:
        EndpointConfigError: a named path cannot be opened
    """
    with ExitStack() as stack:
        if config.input_path is None:
            source = stdin
        else:
            try:
                source = open(config.input_path, "rb")
            except OSError as e:
                raise EndpointConfigError(
                    "open input", f"cannot open {config.input_path}: {e.strerror or e}"
                ) from e
            stack.callback(_close, source, "input")
            logger.debug("Reading from %s", config.input_path)

        if config.output_path is None:
            sink = stdout
        else:
            try:
                sink = os.fdopen(os.open(config.output_path, os.O_CREAT | os.O_WRONLY, 0o644), "wb")
            except OSError as e:
                raise EndpointConfigError(
                    "open output", f"cannot open {config.output_path}: {e.strerror or e}"
                ) from e
            stack.callback(_close, sink, "output")
            logger.debug("Writing to %s", config.output_path)

        yield source, sink


def read_all(source: BinaryIO) -> bytes:
    try:
        return source.read()
    except OSError as e:
        raise StreamIOError("read input", str(e)) from e


def _is_regular_file(stream: BinaryIO) -> bool:
    try:
        return stat.S_ISREG(os.fstat(stream.fileno()).st_mode)
    except (OSError, ValueError):
        return False


def write_all(sink: BinaryIO, data: bytes, truncate: bool = False) -> None:
    """
    Write the whole buffer in one operation and flush it.

    With truncate, a regular file is cut to the end of the new content;
    devices and pipes are left alone.
    """
    try:
        sink.write(data)
        if truncate and _is_regular_file(sink):
            sink.truncate()
        sink.flush()
    except OSError as e:
        raise StreamIOError("write output", str(e)) from e
