"""
Pytest configuration and fixtures.

Ensures src/ is importable and provides rewards file documents shared by
the codec and driver tests.
"""
from __future__ import annotations

import copy
import json
import sys
from pathlib import Path

import pytest

# Add src/ to Python path if not already present
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from rewards_ssz.contracts.rewards_file import RewardsFile  # noqa: E402
from rewards_ssz.core.merkle import compute_merkle_root  # noqa: E402


MINIMAL_DOCUMENT = {
    "magic": "0x52505254",
    "rewardsFileVersion": 3,
    "rulesetVersion": 9,
    "network": "holesky",
    "index": 155,
    "startTime": "2024-05-01T12:00:00Z",
    "endTime": "2024-05-29T12:00:00Z",
    "consensusStartBlock": 0,
    "consensusEndBlock": 0,
    "executionStartBlock": 0,
    "executionEndBlock": 0,
    "intervalsPassed": 0,
    "merkleRoot": "0x" + "00" * 32,
    "totalRewards": {
        "protocolDaoRpl": "0",
        "totalCollateralRpl": "0",
        "totalOracleDaoRpl": "0",
        "totalSmoothingPoolEth": "0",
        "poolStakerSmoothingPoolEth": "0",
        "nodeOperatorSmoothingPoolEth": "0",
        "totalNodeWeight": "0",
    },
    "networkRewards": {},
    "nodeRewards": {},
    "minipoolPerformanceFileCid": "",
}


def _node(network: int, collateral: str, odao: str, eth: str) -> dict:
    return {
        "rewardNetwork": network,
        "collateralRpl": collateral,
        "oracleDaoRpl": odao,
        "smoothingPoolEth": eth,
    }


@pytest.fixture
def minimal_document() -> dict:
    """Smallest valid rewards file: no network or node rewards."""
    return copy.deepcopy(MINIMAL_DOCUMENT)


@pytest.fixture
def populated_document() -> dict:
    """Rewards file with two networks, four nodes and a matching merkle root."""
    document = copy.deepcopy(MINIMAL_DOCUMENT)
    document.update({
        "consensusStartBlock": 1452000,
        "consensusEndBlock": 1653599,
        "executionStartBlock": 1370123,
        "executionEndBlock": 1571001,
        "intervalsPassed": 1,
        "totalRewards": {
            "protocolDaoRpl": "1250000000000000000000",
            "totalCollateralRpl": "52500000000000000000000",
            "totalOracleDaoRpl": "11400000000000000000000",
            "totalSmoothingPoolEth": "81300000000000000000",
            "poolStakerSmoothingPoolEth": "40650000000000000000",
            "nodeOperatorSmoothingPoolEth": "40650000000000000000",
            "totalNodeWeight": "98765432100000000000000",
        },
        "networkRewards": {
            "0": {
                "collateralRpl": "52500000000000000000000",
                "oracleDaoRpl": "11400000000000000000000",
                "smoothingPoolEth": "40650000000000000000",
            },
            "1": {
                "collateralRpl": "0",
                "oracleDaoRpl": "0",
                "smoothingPoolEth": "0",
            },
        },
        "nodeRewards": {
            "0x0a1b2c3d4e5f60718293a4b5c6d7e8f901234567": _node(0, "1000000000000000000", "0", "250000000000000000"),
            "0x1111111111111111111111111111111111111111": _node(0, "51000000000000000000000", "5700000000000000000000", "40000000000000000000"),
            "0x9f8e7d6c5b4a39281706f5e4d3c2b1a098765432": _node(1, "1499000000000000000000", "5700000000000000000000", "399750000000000000"),
            "0xffffffffffffffffffffffffffffffffffffffff": _node(0, "0", "0", "1"),
        },
    })
    rewards_file = RewardsFile.model_validate(document)
    document["merkleRoot"] = "0x" + compute_merkle_root(rewards_file).hex()
    return document


@pytest.fixture
def encode_json():
    """Serialize a document dict to JSON bytes."""
    def _encode(document: dict) -> bytes:
        return json.dumps(document).encode("utf-8")
    return _encode
