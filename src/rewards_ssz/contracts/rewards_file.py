"""
Rewards file data model

Describes one rewards interval: per-network and per-node reward amounts, the
merkle root committing to the node entries, and the interval metadata.
The same model backs both the JSON text form and the SSZ binary form; the
encoders live in rewards_ssz.core.codec.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


# ============================================================================
# CONSTANTS
# ============================================================================

MAGIC: bytes = b"RPRT"
"""Magic header at the start of every SSZ rewards file (format version 1)."""

PERFORMANCE_CID_PLACEHOLDER: str = "---"
"""Text rendering of an absent minipool performance file CID."""

UINT64_MAX: int = 2**64 - 1
UINT256_MAX: int = 2**256 - 1

MAX_NETWORK_REWARDS: int = 128
"""Upper bound of the networkRewards list."""

NETWORK_CHAIN_IDS: Dict[str, int] = {
    "mainnet": 1,
    "prater": 5,
    "devnet": 7,
    "holesky": 17000,
}
"""Network name to chain id; the SSZ form stores the chain id."""

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


# ============================================================================
# EXCEPTIONS
# ============================================================================

class RewardsFileError(ValueError):
    """Base exception for rewards file codec failures."""
    pass


class MalformedRewardsFileError(RewardsFileError):
    """Input (text or binary) could not be parsed into a rewards file."""
    pass


class MagicMismatchError(MalformedRewardsFileError):
    """Binary input does not start with the expected magic header."""
    pass


class EmissionError(RewardsFileError):
    """A populated rewards file could not be serialized."""
    pass


class ProofGenerationError(RewardsFileError):
    """Inclusion proofs could not be derived from the rewards file."""
    pass


# ============================================================================
# HELPERS
# ============================================================================

def network_name_for_chain_id(chain_id: int) -> str:
    """Reverse lookup of NETWORK_CHAIN_IDS."""
    for name, known_id in NETWORK_CHAIN_IDS.items():
        if known_id == chain_id:
            return name
    raise ValueError(f"unknown network chain id: {chain_id}")


def parse_uint256(value: object) -> int:
    """Accept a decimal string or a JSON integer holding a uint256."""
    if isinstance(value, bool):
        raise ValueError("expected a uint256, got a boolean")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str):
        if not value.isdigit() or not value.isascii():
            raise ValueError(f"expected a decimal uint256 string, got {value!r}")
        amount = int(value)
    else:
        raise ValueError(f"expected a uint256, got {type(value).__name__}")
    if amount < 0 or amount > UINT256_MAX:
        raise ValueError(f"value out of uint256 range: {amount}")
    return amount


def parse_hex_bytes(value: object, size: int) -> bytes:
    """Accept raw bytes or 0x-prefixed hex text of exactly ``size`` bytes."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        text = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise ValueError(f"invalid hex string: {value!r}")
    else:
        raise ValueError(f"expected hex string, got {type(value).__name__}")
    if len(raw) != size:
        raise ValueError(f"expected {size} bytes, got {len(raw)}")
    return raw


def normalize_address(value: str) -> str:
    """Lowercase 0x-prefixed 20-byte address."""
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        raise ValueError(f"invalid node address: {value!r}")
    return value.lower()


# ============================================================================
# MODELS
# ============================================================================

class TotalRewards(BaseModel):
    """Interval-wide reward totals (uint256 amounts in wei)."""

    protocol_dao_rpl: int = Field(0, alias="protocolDaoRpl")
    total_collateral_rpl: int = Field(0, alias="totalCollateralRpl")
    total_oracle_dao_rpl: int = Field(0, alias="totalOracleDaoRpl")
    total_smoothing_pool_eth: int = Field(0, alias="totalSmoothingPoolEth")
    pool_staker_smoothing_pool_eth: int = Field(0, alias="poolStakerSmoothingPoolEth")
    node_operator_smoothing_pool_eth: int = Field(0, alias="nodeOperatorSmoothingPoolEth")
    total_node_weight: int = Field(0, alias="totalNodeWeight")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator(
        "protocol_dao_rpl",
        "total_collateral_rpl",
        "total_oracle_dao_rpl",
        "total_smoothing_pool_eth",
        "pool_staker_smoothing_pool_eth",
        "node_operator_smoothing_pool_eth",
        "total_node_weight",
        mode="before",
    )
    @classmethod
    def _validate_amount(cls, v: object) -> int:
        return parse_uint256(v)

    @field_serializer(
        "protocol_dao_rpl",
        "total_collateral_rpl",
        "total_oracle_dao_rpl",
        "total_smoothing_pool_eth",
        "pool_staker_smoothing_pool_eth",
        "node_operator_smoothing_pool_eth",
        "total_node_weight",
    )
    def _serialize_amount(self, v: int) -> str:
        return str(v)


class NetworkReward(BaseModel):
    """Rewards assigned to one network (keyed by network id in the file)."""

    collateral_rpl: int = Field(0, alias="collateralRpl")
    oracle_dao_rpl: int = Field(0, alias="oracleDaoRpl")
    smoothing_pool_eth: int = Field(0, alias="smoothingPoolEth")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("collateral_rpl", "oracle_dao_rpl", "smoothing_pool_eth", mode="before")
    @classmethod
    def _validate_amount(cls, v: object) -> int:
        return parse_uint256(v)

    @field_serializer("collateral_rpl", "oracle_dao_rpl", "smoothing_pool_eth")
    def _serialize_amount(self, v: int) -> str:
        return str(v)


class NodeReward(BaseModel):
    """
    Rewards for one node operator (keyed by node address in the file).

    merkle_proof is derived from the whole file and is never part of the
    binary form; it is None until proofs are generated or read from text.
    """

    reward_network: int = Field(0, ge=0, le=UINT64_MAX, alias="rewardNetwork")
    collateral_rpl: int = Field(0, alias="collateralRpl")
    oracle_dao_rpl: int = Field(0, alias="oracleDaoRpl")
    smoothing_pool_eth: int = Field(0, alias="smoothingPoolEth")
    merkle_proof: Optional[List[str]] = Field(None, alias="merkleProof")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("collateral_rpl", "oracle_dao_rpl", "smoothing_pool_eth", mode="before")
    @classmethod
    def _validate_amount(cls, v: object) -> int:
        return parse_uint256(v)

    @field_validator("merkle_proof")
    @classmethod
    def _validate_proof(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        for item in v:
            if not _HASH_RE.match(item):
                raise ValueError(f"invalid merkle proof hash: {item!r}")
        return [item.lower() for item in v]

    @field_serializer("collateral_rpl", "oracle_dao_rpl", "smoothing_pool_eth")
    def _serialize_amount(self, v: int) -> str:
        return str(v)

    @property
    def total_rpl(self) -> int:
        """RPL claimable by the node (collateral plus oDAO share)."""
        return self.collateral_rpl + self.oracle_dao_rpl


class RewardsFile(BaseModel):
    """
    One rewards interval.

    Field order is the canonical order of both encodings. The text form
    renders an empty minipool performance CID as "---" and reads "---" back
    as empty; the CID has no place in the binary form.
    """

    magic: bytes = Field(MAGIC, description="Format/version header, checked on ingestion")
    rewards_file_version: int = Field(..., ge=0, le=UINT64_MAX, alias="rewardsFileVersion")
    ruleset_version: int = Field(..., ge=0, le=UINT64_MAX, alias="rulesetVersion")
    network: str = Field(..., description="Network name, see NETWORK_CHAIN_IDS")
    index: int = Field(..., ge=0, le=UINT64_MAX, description="Rewards interval index")
    start_time: datetime = Field(..., alias="startTime")
    end_time: datetime = Field(..., alias="endTime")
    consensus_start_block: int = Field(0, ge=0, le=UINT64_MAX, alias="consensusStartBlock")
    consensus_end_block: int = Field(0, ge=0, le=UINT64_MAX, alias="consensusEndBlock")
    execution_start_block: int = Field(0, ge=0, le=UINT64_MAX, alias="executionStartBlock")
    execution_end_block: int = Field(0, ge=0, le=UINT64_MAX, alias="executionEndBlock")
    intervals_passed: int = Field(0, ge=0, le=UINT64_MAX, alias="intervalsPassed")
    merkle_root: bytes = Field(bytes(32), alias="merkleRoot")
    total_rewards: TotalRewards = Field(default_factory=TotalRewards, alias="totalRewards")
    network_rewards: Dict[int, NetworkReward] = Field(default_factory=dict, alias="networkRewards")
    node_rewards: Dict[str, NodeReward] = Field(default_factory=dict, alias="nodeRewards")
    minipool_performance_file_cid: str = Field("", alias="minipoolPerformanceFileCid")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("magic", mode="before")
    @classmethod
    def _validate_magic(cls, v: object) -> bytes:
        raw = parse_hex_bytes(v, len(MAGIC))
        if raw != MAGIC:
            raise ValueError(f"invalid magic header 0x{raw.hex()}, expected 0x{MAGIC.hex()}")
        return raw

    @field_validator("merkle_root", mode="before")
    @classmethod
    def _validate_merkle_root(cls, v: object) -> bytes:
        return parse_hex_bytes(v, 32)

    @field_validator("network")
    @classmethod
    def _validate_network(cls, v: str) -> str:
        if v not in NETWORK_CHAIN_IDS:
            raise ValueError(f"unknown network {v!r}, expected one of {sorted(NETWORK_CHAIN_IDS)}")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def _validate_time(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        v = v.astimezone(timezone.utc)
        if v.microsecond:
            raise ValueError("sub-second timestamps cannot be encoded")
        if v.timestamp() < 0:
            raise ValueError("timestamps before the unix epoch cannot be encoded")
        return v

    @field_validator("network_rewards")
    @classmethod
    def _validate_network_rewards(cls, v: Dict[int, NetworkReward]) -> Dict[int, NetworkReward]:
        if len(v) > MAX_NETWORK_REWARDS:
            raise ValueError(f"at most {MAX_NETWORK_REWARDS} network rewards allowed, got {len(v)}")
        for network_id in v:
            if network_id < 0 or network_id > UINT64_MAX:
                raise ValueError(f"network id out of uint64 range: {network_id}")
        return dict(sorted(v.items()))

    @field_validator("node_rewards", mode="before")
    @classmethod
    def _normalize_node_addresses(cls, v: object) -> object:
        if not isinstance(v, dict):
            return v
        normalized = {}
        for address, reward in v.items():
            key = normalize_address(address)
            if key in normalized:
                raise ValueError(f"duplicate node address: {address}")
            normalized[key] = reward
        return dict(sorted(normalized.items()))

    @field_validator("minipool_performance_file_cid")
    @classmethod
    def _normalize_performance_cid(cls, v: str) -> str:
        return "" if v == PERFORMANCE_CID_PLACEHOLDER else v

    @field_serializer("magic", "merkle_root")
    def _serialize_hex(self, v: bytes) -> str:
        return "0x" + v.hex()

    @field_serializer("start_time", "end_time")
    def _serialize_time(self, v: datetime) -> str:
        return v.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    @field_serializer("minipool_performance_file_cid")
    def _serialize_performance_cid(self, v: str) -> str:
        return v or PERFORMANCE_CID_PLACEHOLDER

    @property
    def chain_id(self) -> int:
        return NETWORK_CHAIN_IDS[self.network]

    def to_document(self) -> dict:
        """JSON-ready dict in canonical field order (text form)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
