"""
Rewards file codec

Five operations over a RewardsFile:

- ingest(bytes)  -> RewardsFile   SSZ binary form
- emit(file)     -> bytes         SSZ binary form
- from_text(bytes) -> RewardsFile JSON text form
- to_text(file)  -> bytes         JSON text form
- proofs(file)   -> {address: [hash, ...]}

SSZ layout (container, fixed part first):

    magic                  Bytes4
    rewardsFileVersion     uint64
    rulesetVersion         uint64
    network                uint64 (chain id)
    index                  uint64
    startTime, endTime     uint64 (unix seconds)
    consensusStartBlock    uint64
    consensusEndBlock      uint64
    executionStartBlock    uint64
    executionEndBlock      uint64
    intervalsPassed        uint64
    merkleRoot             Bytes32
    totalRewards           7 x uint256
    networkRewards         offset -> List[NetworkReward, 128]
    nodeRewards            offset -> List[NodeReward, 2**63 - 1]

NetworkReward = network uint64 + 3 x uint256 (104 bytes), NodeReward =
address Bytes20 + network uint64 + 3 x uint256 (124 bytes). Both lists are
in ascending key order.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from pydantic import ValidationError

from rewards_ssz.contracts.rewards_file import (
    MAGIC,
    MAX_NETWORK_REWARDS,
    EmissionError,
    MagicMismatchError,
    MalformedRewardsFileError,
    NetworkReward,
    NodeReward,
    RewardsFile,
    TotalRewards,
    network_name_for_chain_id,
)
from rewards_ssz.core.merkle import generate_proofs
from rewards_ssz.core.ssz import (
    BYTES_PER_LENGTH_OFFSET,
    SSZDecodeError,
    SSZEncodeError,
    SSZReader,
    encode_container,
    encode_fixed_bytes,
    encode_uint64,
    encode_uint256,
    split_fixed_list,
)

logger = logging.getLogger(__name__)

ADDRESS_SIZE = 20
NETWORK_REWARD_SIZE = 8 + 3 * 32
NODE_REWARD_SIZE = ADDRESS_SIZE + 8 + 3 * 32
MAX_NODE_REWARDS = 2**63 - 1

_UINT64_FIELDS = (
    "rewards_file_version",
    "ruleset_version",
    "network",
    "index",
    "start_time",
    "end_time",
    "consensus_start_block",
    "consensus_end_block",
    "execution_start_block",
    "execution_end_block",
    "intervals_passed",
)

_TOTAL_REWARDS_FIELDS = (
    "protocol_dao_rpl",
    "total_collateral_rpl",
    "total_oracle_dao_rpl",
    "total_smoothing_pool_eth",
    "pool_staker_smoothing_pool_eth",
    "node_operator_smoothing_pool_eth",
    "total_node_weight",
)

FIXED_PART_SIZE = (
    len(MAGIC)
    + 8 * len(_UINT64_FIELDS)
    + 32
    + 32 * len(_TOTAL_REWARDS_FIELDS)
    + 2 * BYTES_PER_LENGTH_OFFSET
)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(item) for item in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def _build(fields: dict) -> RewardsFile:
    try:
        return RewardsFile.model_validate(fields)
    except ValidationError as e:
        raise MalformedRewardsFileError(f"invalid rewards file: {_format_validation_error(e)}") from e


# ============================================================================
# SSZ
# ============================================================================

def _unix_seconds(value: datetime) -> int:
    return int(value.astimezone(timezone.utc).timestamp())


def _encode_network_reward(network_id: int, reward: NetworkReward) -> bytes:
    what = f"networkRewards[{network_id}]"
    return (
        encode_uint64(network_id, f"{what}.network")
        + encode_uint256(reward.collateral_rpl, f"{what}.collateralRpl")
        + encode_uint256(reward.oracle_dao_rpl, f"{what}.oracleDaoRpl")
        + encode_uint256(reward.smoothing_pool_eth, f"{what}.smoothingPoolEth")
    )


def _encode_node_reward(address: str, reward: NodeReward) -> bytes:
    what = f"nodeRewards[{address}]"
    return (
        encode_fixed_bytes(bytes.fromhex(address[2:]), ADDRESS_SIZE, f"{what}.address")
        + encode_uint64(reward.reward_network, f"{what}.rewardNetwork")
        + encode_uint256(reward.collateral_rpl, f"{what}.collateralRpl")
        + encode_uint256(reward.oracle_dao_rpl, f"{what}.oracleDaoRpl")
        + encode_uint256(reward.smoothing_pool_eth, f"{what}.smoothingPoolEth")
    )


def emit(rewards_file: RewardsFile) -> bytes:
    """Serialize to the SSZ binary form."""
    try:
        if len(rewards_file.network_rewards) > MAX_NETWORK_REWARDS:
            raise SSZEncodeError(
                f"networkRewards: {len(rewards_file.network_rewards)} elements exceeds "
                f"the limit of {MAX_NETWORK_REWARDS}"
            )
        uint64_values = {
            "rewards_file_version": rewards_file.rewards_file_version,
            "ruleset_version": rewards_file.ruleset_version,
            "network": rewards_file.chain_id,
            "index": rewards_file.index,
            "start_time": _unix_seconds(rewards_file.start_time),
            "end_time": _unix_seconds(rewards_file.end_time),
            "consensus_start_block": rewards_file.consensus_start_block,
            "consensus_end_block": rewards_file.consensus_end_block,
            "execution_start_block": rewards_file.execution_start_block,
            "execution_end_block": rewards_file.execution_end_block,
            "intervals_passed": rewards_file.intervals_passed,
        }
        fields: List[Tuple[bool, bytes]] = [
            (False, encode_fixed_bytes(rewards_file.magic, len(MAGIC), "magic")),
        ]
        fields.extend((False, encode_uint64(uint64_values[name], name)) for name in _UINT64_FIELDS)
        fields.append((False, encode_fixed_bytes(rewards_file.merkle_root, 32, "merkleRoot")))
        fields.extend(
            (False, encode_uint256(getattr(rewards_file.total_rewards, name), f"totalRewards.{name}"))
            for name in _TOTAL_REWARDS_FIELDS
        )
        fields.append((True, b"".join(
            _encode_network_reward(network_id, reward)
            for network_id, reward in sorted(rewards_file.network_rewards.items())
        )))
        fields.append((True, b"".join(
            _encode_node_reward(address, reward)
            for address, reward in sorted(rewards_file.node_rewards.items())
        )))
        data = encode_container(fields)
    except (SSZEncodeError, KeyError, ValueError) as e:
        raise EmissionError(f"cannot encode rewards file: {e}") from e
    logger.debug(
        "Encoded rewards file index %d: %d network rewards, %d node rewards, %d bytes",
        rewards_file.index, len(rewards_file.network_rewards), len(rewards_file.node_rewards), len(data),
    )
    return data


def _decode_network_rewards(chunks: List[bytes]) -> Dict[int, dict]:
    rewards: Dict[int, dict] = {}
    previous = -1
    for i, chunk in enumerate(chunks):
        reader = SSZReader(chunk)
        network_id = reader.uint64(f"networkRewards[{i}].network")
        if network_id <= previous:
            raise SSZDecodeError(f"networkRewards[{i}]: network ids must be strictly ascending")
        previous = network_id
        rewards[network_id] = {
            "collateral_rpl": reader.uint256(f"networkRewards[{i}].collateralRpl"),
            "oracle_dao_rpl": reader.uint256(f"networkRewards[{i}].oracleDaoRpl"),
            "smoothing_pool_eth": reader.uint256(f"networkRewards[{i}].smoothingPoolEth"),
        }
    return rewards


def _decode_node_rewards(chunks: List[bytes]) -> Dict[str, dict]:
    rewards: Dict[str, dict] = {}
    previous = b""
    for i, chunk in enumerate(chunks):
        reader = SSZReader(chunk)
        address = reader.fixed_bytes(ADDRESS_SIZE, f"nodeRewards[{i}].address")
        if address <= previous:
            raise SSZDecodeError(f"nodeRewards[{i}]: addresses must be strictly ascending")
        previous = address
        rewards["0x" + address.hex()] = {
            "reward_network": reader.uint64(f"nodeRewards[{i}].rewardNetwork"),
            "collateral_rpl": reader.uint256(f"nodeRewards[{i}].collateralRpl"),
            "oracle_dao_rpl": reader.uint256(f"nodeRewards[{i}].oracleDaoRpl"),
            "smoothing_pool_eth": reader.uint256(f"nodeRewards[{i}].smoothingPoolEth"),
        }
    return rewards


def ingest(data: bytes) -> RewardsFile:
    """
    Parse the SSZ binary form into a fresh RewardsFile.

    Raises:
        MagicMismatchError: data does not start with MAGIC
        MalformedRewardsFileError: truncated data, bad offsets, unsorted or
            out-of-range fields
    """
    if data[:len(MAGIC)] != MAGIC:
        raise MagicMismatchError(
            f"invalid magic header 0x{data[:len(MAGIC)].hex()}, expected 0x{MAGIC.hex()}"
        )
    try:
        reader = SSZReader(data)
        fields: dict = {"magic": reader.fixed_bytes(len(MAGIC), "magic")}
        for name in _UINT64_FIELDS:
            fields[name] = reader.uint64(name)
        fields["merkle_root"] = reader.fixed_bytes(32, "merkleRoot")
        fields["total_rewards"] = TotalRewards.model_validate(
            {name: reader.uint256(f"totalRewards.{name}") for name in _TOTAL_REWARDS_FIELDS}
        )
        network_offset = reader.offset("networkRewards offset")
        node_offset = reader.offset("nodeRewards offset")

        if network_offset != FIXED_PART_SIZE:
            raise SSZDecodeError(
                f"networkRewards offset {network_offset} must equal the fixed part size {FIXED_PART_SIZE}"
            )
        if not network_offset <= node_offset <= len(data):
            raise SSZDecodeError(
                f"nodeRewards offset {node_offset} outside [{network_offset}, {len(data)}]"
            )

        fields["network_rewards"] = _decode_network_rewards(split_fixed_list(
            data[network_offset:node_offset], NETWORK_REWARD_SIZE, MAX_NETWORK_REWARDS, "networkRewards",
        ))
        fields["node_rewards"] = _decode_node_rewards(split_fixed_list(
            data[node_offset:], NODE_REWARD_SIZE, MAX_NODE_REWARDS, "nodeRewards",
        ))

        fields["network"] = network_name_for_chain_id(fields["network"])
        for name in ("start_time", "end_time"):
            fields[name] = datetime.fromtimestamp(fields[name], tz=timezone.utc)
    except (SSZDecodeError, ValueError, OverflowError, OSError) as e:
        raise MalformedRewardsFileError(f"invalid SSZ rewards file: {e}") from e

    rewards_file = _build(fields)
    logger.debug(
        "Decoded rewards file index %d: %d network rewards, %d node rewards",
        rewards_file.index, len(rewards_file.network_rewards), len(rewards_file.node_rewards),
    )
    return rewards_file


# ============================================================================
# JSON
# ============================================================================

def from_text(data: bytes) -> RewardsFile:
    """
    Parse the JSON text form into a fresh RewardsFile.

    Raises:
        MalformedRewardsFileError: invalid JSON or a field that fails validation
    """
    try:
        document = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedRewardsFileError(f"invalid JSON: {e}") from e
    if not isinstance(document, dict):
        raise MalformedRewardsFileError(
            f"invalid rewards file: expected a JSON object, got {type(document).__name__}"
        )
    return _build(document)


def to_text(rewards_file: RewardsFile) -> bytes:
    """Serialize to the JSON text form (compact, canonical field order)."""
    try:
        document = rewards_file.to_document()
        return json.dumps(document, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EmissionError(f"cannot render rewards file as JSON: {e}") from e


# ============================================================================
# PROOFS
# ============================================================================

def proofs(rewards_file: RewardsFile) -> Dict[str, List[str]]:
    """
    Derive inclusion proofs and attach them to each node entry.

    Returns the proofs as 0x-prefixed hex strings keyed by node address.

    Raises:
        ProofGenerationError: merkle root mismatch or an amount overflow
    """
    hex_proofs = {
        address: ["0x" + sibling.hex() for sibling in siblings]
        for address, siblings in generate_proofs(rewards_file).items()
    }
    for address, proof in hex_proofs.items():
        rewards_file.node_rewards[address].merkle_proof = proof
    return hex_proofs
