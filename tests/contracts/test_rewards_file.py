"""
Tests for the RewardsFile model

Ensures:
1. field validation (uint64 / uint256 / hex / address / network)
2. the "---" normalization of minipoolPerformanceFileCid
3. the magic header is always checked
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from rewards_ssz.contracts.rewards_file import (
    MAGIC,
    PERFORMANCE_CID_PLACEHOLDER,
    NetworkReward,
    NodeReward,
    RewardsFile,
    TotalRewards,
    network_name_for_chain_id,
    parse_hex_bytes,
    parse_uint256,
)


def test_minimal_document_parses(minimal_document):
    rewards_file = RewardsFile.model_validate(minimal_document)

    assert rewards_file.magic == MAGIC
    assert rewards_file.network == "holesky"
    assert rewards_file.chain_id == 17000
    assert rewards_file.start_time == datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert rewards_file.merkle_root == bytes(32)
    assert rewards_file.node_rewards == {}


def test_magic_defaults_when_absent(minimal_document):
    del minimal_document["magic"]
    rewards_file = RewardsFile.model_validate(minimal_document)
    assert rewards_file.magic == MAGIC


def test_wrong_magic_rejected(minimal_document):
    minimal_document["magic"] = "0x00000000"
    with pytest.raises(ValidationError, match="magic"):
        RewardsFile.model_validate(minimal_document)


def test_performance_cid_placeholder_normalization(minimal_document):
    rewards_file = RewardsFile.model_validate(minimal_document)
    assert rewards_file.minipool_performance_file_cid == ""
    assert rewards_file.to_document()["minipoolPerformanceFileCid"] == PERFORMANCE_CID_PLACEHOLDER

    minimal_document["minipoolPerformanceFileCid"] = PERFORMANCE_CID_PLACEHOLDER
    rewards_file = RewardsFile.model_validate(minimal_document)
    assert rewards_file.minipool_performance_file_cid == ""

    cid = "bafybeiczsscdsbs7ffqz55asqdf3smv6klcw3gofszvwlyarci47bgf354"
    minimal_document["minipoolPerformanceFileCid"] = cid
    rewards_file = RewardsFile.model_validate(minimal_document)
    assert rewards_file.to_document()["minipoolPerformanceFileCid"] == cid


def test_to_document_field_order(populated_document):
    document = RewardsFile.model_validate(populated_document).to_document()
    assert list(document) == [
        "magic",
        "rewardsFileVersion",
        "rulesetVersion",
        "network",
        "index",
        "startTime",
        "endTime",
        "consensusStartBlock",
        "consensusEndBlock",
        "executionStartBlock",
        "executionEndBlock",
        "intervalsPassed",
        "merkleRoot",
        "totalRewards",
        "networkRewards",
        "nodeRewards",
        "minipoolPerformanceFileCid",
    ]


def test_amounts_render_as_decimal_strings(populated_document):
    document = RewardsFile.model_validate(populated_document).to_document()
    assert document["totalRewards"]["totalCollateralRpl"] == "52500000000000000000000"
    assert document["networkRewards"]["0"]["smoothingPoolEth"] == "40650000000000000000"
    node = document["nodeRewards"]["0xffffffffffffffffffffffffffffffffffffffff"]
    assert node == {
        "rewardNetwork": 0,
        "collateralRpl": "0",
        "oracleDaoRpl": "0",
        "smoothingPoolEth": "1",
    }


def test_unknown_field_rejected(minimal_document):
    minimal_document["bogusField"] = 1
    with pytest.raises(ValidationError, match="bogusField"):
        RewardsFile.model_validate(minimal_document)


def test_unknown_network_rejected(minimal_document):
    minimal_document["network"] = "ropsten"
    with pytest.raises(ValidationError, match="unknown network"):
        RewardsFile.model_validate(minimal_document)


def test_uint64_bounds(minimal_document):
    minimal_document["index"] = 2**64
    with pytest.raises(ValidationError):
        RewardsFile.model_validate(minimal_document)

    minimal_document["index"] = -1
    with pytest.raises(ValidationError):
        RewardsFile.model_validate(minimal_document)


def test_sub_second_time_rejected(minimal_document):
    minimal_document["startTime"] = "2024-05-01T12:00:00.5Z"
    with pytest.raises(ValidationError, match="sub-second"):
        RewardsFile.model_validate(minimal_document)


def test_time_offsets_normalize_to_utc(minimal_document):
    minimal_document["startTime"] = "2024-05-01T21:00:00+09:00"
    document = RewardsFile.model_validate(minimal_document).to_document()
    assert document["startTime"] == "2024-05-01T12:00:00Z"


def test_node_addresses_normalized_and_sorted(minimal_document):
    minimal_document["nodeRewards"] = {
        "0xBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBBB": {},
        "0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa": {},
    }
    rewards_file = RewardsFile.model_validate(minimal_document)
    assert list(rewards_file.node_rewards) == [
        "0x" + "a" * 40,
        "0x" + "b" * 40,
    ]


def test_duplicate_node_address_rejected(minimal_document):
    minimal_document["nodeRewards"] = {
        "0xAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA": {},
        "0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa": {},
    }
    with pytest.raises(ValidationError, match="duplicate node address"):
        RewardsFile.model_validate(minimal_document)


def test_invalid_node_address_rejected(minimal_document):
    minimal_document["nodeRewards"] = {"0x1234": {}}
    with pytest.raises(ValidationError, match="invalid node address"):
        RewardsFile.model_validate(minimal_document)


def test_network_rewards_limit(minimal_document):
    minimal_document["networkRewards"] = {str(i): {} for i in range(129)}
    with pytest.raises(ValidationError, match="at most 128"):
        RewardsFile.model_validate(minimal_document)


def test_network_rewards_keys_sorted_numerically(minimal_document):
    minimal_document["networkRewards"] = {"10": {}, "2": {}, "0": {}}
    rewards_file = RewardsFile.model_validate(minimal_document)
    assert list(rewards_file.network_rewards) == [0, 2, 10]


def test_merkle_proof_validation():
    reward = NodeReward.model_validate({"merkleProof": ["0x" + "AB" * 32]})
    assert reward.merkle_proof == ["0x" + "ab" * 32]

    with pytest.raises(ValidationError, match="invalid merkle proof hash"):
        NodeReward.model_validate({"merkleProof": ["0x1234"]})


def test_node_total_rpl():
    reward = NodeReward(collateral_rpl=5, oracle_dao_rpl=7)
    assert reward.total_rpl == 12


def test_parse_uint256():
    assert parse_uint256("0") == 0
    assert parse_uint256(str(2**256 - 1)) == 2**256 - 1
    assert parse_uint256(42) == 42
    for bad in ["-1", "1.5", "0x10", "", str(2**256), True, 1.0, None]:
        with pytest.raises(ValueError):
            parse_uint256(bad)


def test_parse_hex_bytes():
    assert parse_hex_bytes("0x52505254", 4) == MAGIC
    assert parse_hex_bytes(MAGIC, 4) == MAGIC
    with pytest.raises(ValueError, match="expected 4 bytes"):
        parse_hex_bytes("0x5250", 4)
    with pytest.raises(ValueError, match="invalid hex"):
        parse_hex_bytes("0xzzzzzzzz", 4)


def test_network_name_for_chain_id():
    assert network_name_for_chain_id(1) == "mainnet"
    assert network_name_for_chain_id(17000) == "holesky"
    with pytest.raises(ValueError, match="unknown network chain id"):
        network_name_for_chain_id(999)


def test_total_rewards_defaults():
    totals = TotalRewards()
    assert totals.model_dump(by_alias=True, mode="json")["totalNodeWeight"] == "0"
    assert NetworkReward().collateral_rpl == 0
