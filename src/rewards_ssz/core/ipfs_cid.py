"""
IPFS CID of a single-file directory

Computes the CID that `ipfs add --wrap-with-directory` would report for one
file, without talking to an IPFS node:

- the file is cut into 256 KiB chunks, each a UnixFS file leaf (dag-pb,
  CIDv0);
- more than one chunk is joined by a balanced tree of UnixFS file nodes with
  at most 174 links each;
- the file is linked by name from a UnixFS directory node, whose CIDv1
  (dag-pb, sha2-256) is rendered in multibase base32 ("b...").
"""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass
from typing import List, Optional, Sequence

DEFAULT_CHUNK_SIZE: int = 256 * 1024
MAX_LINKS_PER_NODE: int = 174

# UnixFS Data.DataType
_UNIXFS_DIRECTORY = 1
_UNIXFS_FILE = 2

# multiformats codes
_MULTIHASH_SHA2_256 = 0x12
_CODEC_DAG_PB = 0x70
_CID_VERSION_1 = 0x01
_MULTIBASE_BASE32 = "b"


@dataclass(frozen=True)
class _DagNode:
    block: bytes
    cid: bytes
    filesize: int
    cumulative_size: int


# ============================================================================
# protobuf wire encoding
# ============================================================================

def _uvarint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _varint_field(number: int, value: int) -> bytes:
    return _uvarint(number << 3) + _uvarint(value)


def _bytes_field(number: int, value: bytes) -> bytes:
    return _uvarint((number << 3) | 2) + _uvarint(len(value)) + value


def _unixfs_data(
    data_type: int,
    data: Optional[bytes] = None,
    filesize: Optional[int] = None,
    blocksizes: Sequence[int] = (),
) -> bytes:
    out = _varint_field(1, data_type)
    if data:
        out += _bytes_field(2, data)
    if filesize is not None:
        out += _varint_field(3, filesize)
    for size in blocksizes:
        out += _varint_field(4, size)
    return out


def _pb_link(cid: bytes, name: str, tsize: int) -> bytes:
    return _bytes_field(1, cid) + _bytes_field(2, name.encode("utf-8")) + _varint_field(3, tsize)


def _pb_node(links: Sequence[bytes], data: bytes) -> bytes:
    # dag-pb canonical form: Links (field 2) precede Data (field 1)
    return b"".join(_bytes_field(2, link) for link in links) + _bytes_field(1, data)


# ============================================================================
# CIDs
# ============================================================================

def _multihash(block: bytes) -> bytes:
    digest = hashlib.sha256(block).digest()
    return _uvarint(_MULTIHASH_SHA2_256) + _uvarint(len(digest)) + digest


def _cid_v0(block: bytes) -> bytes:
    return _multihash(block)


def _cid_v1_dag_pb(block: bytes) -> bytes:
    return _uvarint(_CID_VERSION_1) + _uvarint(_CODEC_DAG_PB) + _multihash(block)


def _base32(cid: bytes) -> str:
    return _MULTIBASE_BASE32 + base64.b32encode(cid).decode("ascii").lower().rstrip("=")


# ============================================================================
# DAG builders
# ============================================================================

def _file_leaf(chunk: bytes) -> _DagNode:
    block = _pb_node([], _unixfs_data(_UNIXFS_FILE, chunk, filesize=len(chunk)))
    return _DagNode(block, _cid_v0(block), len(chunk), len(block))


def _file_parent(children: Sequence[_DagNode]) -> _DagNode:
    links = [_pb_link(child.cid, "", child.cumulative_size) for child in children]
    filesize = sum(child.filesize for child in children)
    data = _unixfs_data(
        _UNIXFS_FILE,
        filesize=filesize,
        blocksizes=[child.filesize for child in children],
    )
    block = _pb_node(links, data)
    return _DagNode(
        block,
        _cid_v0(block),
        filesize,
        len(block) + sum(child.cumulative_size for child in children),
    )


def _file_dag(data: bytes, chunk_size: int) -> _DagNode:
    chunks = [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)] or [b""]
    layer: List[_DagNode] = [_file_leaf(chunk) for chunk in chunks]
    while len(layer) > 1:
        layer = [
            _file_parent(layer[i:i + MAX_LINKS_PER_NODE])
            for i in range(0, len(layer), MAX_LINKS_PER_NODE)
        ]
    return layer[0]


def _directory_block(entries: Sequence[tuple]) -> bytes:
    """Directory node linking (name, cid, cumulative_size) entries sorted by name."""
    links = [_pb_link(cid, name, size) for name, cid, size in sorted(entries)]
    return _pb_node(links, _unixfs_data(_UNIXFS_DIRECTORY))


def single_file_dir_cid(data: bytes, filename: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """
    CID of a directory containing exactly one file.

    Args:
        data: file content
        filename: name of the file inside the directory
        chunk_size: leaf size, defaults to the IPFS default of 256 KiB

    Returns:
        base32 CIDv1 string of the directory
    """
    if not filename:
        raise ValueError("filename must not be empty")
    if "/" in filename:
        raise ValueError(f"filename must not contain '/': {filename!r}")
    file_node = _file_dag(data, chunk_size)
    block = _directory_block([(filename, file_node.cid, file_node.cumulative_size)])
    return _base32(_cid_v1_dag_pb(block))
