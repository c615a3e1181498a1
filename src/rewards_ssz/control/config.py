"""
Converter configuration

Command-line flags use the single-dash style (`-file`, `-output`, `-encode`,
`-cid`); the double-dash spellings work too.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

LOG_LEVELS = ["debug", "info", "warning", "error", "critical"]


class Direction(str, Enum):
    """Conversion direction."""
    ENCODE = "encode"  # JSON text -> SSZ binary
    DECODE = "decode"  # SSZ binary -> JSON text


@dataclass(frozen=True)
class ConverterConfig:
    input_path: Optional[Path] = None
    output_path: Optional[Path] = None
    encode: bool = False
    cid_filename: str = ""
    with_proofs: bool = False
    log_level: str = "warning"

    @property
    def direction(self) -> Direction:
        return Direction.ENCODE if self.encode else Direction.DECODE

    @property
    def reports_identity(self) -> bool:
        return bool(self.cid_filename)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rewards-ssz",
        description="Convert rewards files between JSON and SSZ, or print the IPFS CID of the SSZ form",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-file", "--file",
        dest="input_path",
        type=Path,
        default=None,
        help="path to file to encode/decode (stdin if not passed)",
    )
    parser.add_argument(
        "-output", "--output",
        dest="output_path",
        type=Path,
        default=None,
        help="path to write to (stdout if not passed)",
    )
    parser.add_argument(
        "-encode", "--encode",
        action="store_true",
        default=False,
        help="treat input as JSON and encode it to SSZ instead of decoding SSZ to JSON",
    )
    parser.add_argument(
        "-cid", "--cid",
        dest="cid_filename",
        default="",
        metavar="FILENAME",
        help="print the IPFS CID of the SSZ data wrapped in a directory under FILENAME, then exit",
    )
    parser.add_argument(
        "-proofs", "--proofs",
        dest="with_proofs",
        action="store_true",
        default=False,
        help="when decoding, derive merkle proofs and include them in the JSON output",
    )
    parser.add_argument(
        "-log-level", "--log-level",
        dest="log_level",
        choices=LOG_LEVELS,
        default=os.getenv("REWARDS_SSZ_LOG_LEVEL", "warning").lower(),
        help="logging level (logs go to stderr)",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> ConverterConfig:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.with_proofs and args.encode:
        parser.error("-proofs only applies when decoding")
    return ConverterConfig(
        input_path=args.input_path,
        output_path=args.output_path,
        encode=args.encode,
        cid_filename=args.cid_filename,
        with_proofs=args.with_proofs,
        log_level=args.log_level,
    )
