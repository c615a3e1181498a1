"""Rewards file data contracts."""

from rewards_ssz.contracts.rewards_file import (
    MAGIC,
    PERFORMANCE_CID_PLACEHOLDER,
    MagicMismatchError,
    MalformedRewardsFileError,
    EmissionError,
    NetworkReward,
    NodeReward,
    ProofGenerationError,
    RewardsFile,
    RewardsFileError,
    TotalRewards,
)

__all__ = [
    "MAGIC",
    "PERFORMANCE_CID_PLACEHOLDER",
    "MagicMismatchError",
    "MalformedRewardsFileError",
    "EmissionError",
    "NetworkReward",
    "NodeReward",
    "ProofGenerationError",
    "RewardsFile",
    "RewardsFileError",
    "TotalRewards",
]
