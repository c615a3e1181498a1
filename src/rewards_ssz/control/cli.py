#!/usr/bin/env python3
"""
rewards-ssz entrypoint

    rewards-ssz -file rewards.ssz > rewards.json
    rewards-ssz -encode -file rewards.json -output rewards.ssz
    rewards-ssz -file rewards.ssz -cid rp-rewards-mainnet-42.ssz
"""

from __future__ import annotations

import logging
import sys
from typing import BinaryIO, Optional, Sequence

from rewards_ssz.control.config import parse_args
from rewards_ssz.control.convert import apply_outcome, run_pipeline
from rewards_ssz.control.endpoints import open_endpoints
from rewards_ssz.control.errors import ConversionError

logger = logging.getLogger(__name__)


def main(
    argv: Optional[Sequence[str]] = None,
    stdin: Optional[BinaryIO] = None,
    stdout: Optional[BinaryIO] = None,
) -> int:
    """
    Run one conversion.

    Args:
        argv: command-line arguments (sys.argv[1:] if None)
        stdin: default input byte stream (process stdin if None)
        stdout: default output byte stream, also receives the CID line
            (process stdout if None)

    Returns:
        0 on success, 1 on any conversion failure
    """
    config = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer

    try:
        with open_endpoints(config, stdin, stdout) as (source, sink):
            outcome = run_pipeline(config, source, sink)
            apply_outcome(outcome, sink, stdout)
    except ConversionError as e:
        logger.debug("Conversion failed", exc_info=True)
        print(f"rewards-ssz: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
