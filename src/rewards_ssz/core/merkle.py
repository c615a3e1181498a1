"""
Merkle tree over node rewards

Each node entry becomes one leaf:

    keccak256(address(20) | network(32, BE) | rpl(32, BE) | eth(32, BE))

where rpl is collateral plus oDAO RPL. Leaves are sorted, parents hash the
sorted pair of their children and an unpaired node is carried up unchanged,
so a proof is just the list of sibling hashes from leaf to root.
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from typing import Dict, List, Sequence

from Crypto.Hash import keccak

from rewards_ssz.contracts.rewards_file import NodeReward, ProofGenerationError, RewardsFile

logger = logging.getLogger(__name__)

ZERO_HASH: bytes = bytes(32)


def keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


def _uint256_be(value: int, what: str) -> bytes:
    try:
        return value.to_bytes(32, "big")
    except OverflowError:
        raise ProofGenerationError(f"{what} does not fit in uint256: {value}")


def node_leaf(address: str, reward: NodeReward) -> bytes:
    """Leaf hash committing to one node's claimable rewards."""
    payload = (
        bytes.fromhex(address[2:])
        + _uint256_be(reward.reward_network, "rewardNetwork")
        + _uint256_be(reward.total_rpl, f"RPL total of {address}")
        + _uint256_be(reward.smoothing_pool_eth, "smoothingPoolEth")
    )
    return keccak256(payload)


def hash_pair(a: bytes, b: bytes) -> bytes:
    if b < a:
        a, b = b, a
    return keccak256(a + b)


class MerkleTree:
    """Sorted-leaf merkle tree with sibling-list proofs."""

    def __init__(self, leaves: Sequence[bytes]):
        self._leaves = sorted(leaves)
        self._layers: List[List[bytes]] = [self._leaves]
        layer = self._leaves
        while len(layer) > 1:
            parents = [hash_pair(layer[i], layer[i + 1]) for i in range(0, len(layer) - 1, 2)]
            if len(layer) % 2:
                parents.append(layer[-1])
            self._layers.append(parents)
            layer = parents

    @property
    def root(self) -> bytes:
        if not self._leaves:
            return ZERO_HASH
        return self._layers[-1][0]

    def proof(self, leaf: bytes) -> List[bytes]:
        index = bisect_left(self._leaves, leaf)
        if index >= len(self._leaves) or self._leaves[index] != leaf:
            raise ProofGenerationError(f"leaf 0x{leaf.hex()} is not part of the tree")
        siblings = []
        for layer in self._layers[:-1]:
            sibling = index ^ 1
            if sibling < len(layer):
                siblings.append(layer[sibling])
            index //= 2
        return siblings


def verify_proof(leaf: bytes, proof: Sequence[bytes], root: bytes) -> bool:
    computed = leaf
    for sibling in proof:
        computed = hash_pair(computed, sibling)
    return computed == root


def compute_merkle_root(rewards_file: RewardsFile) -> bytes:
    """Root the node rewards of ``rewards_file`` commit to."""
    leaves = [node_leaf(address, reward) for address, reward in rewards_file.node_rewards.items()]
    return MerkleTree(leaves).root


def generate_proofs(rewards_file: RewardsFile) -> Dict[str, List[bytes]]:
    """
    Derive the inclusion proof of every node entry.

    Raises:
        ProofGenerationError: the rebuilt root differs from merkle_root
    """
    leaves = {
        address: node_leaf(address, reward)
        for address, reward in rewards_file.node_rewards.items()
    }
    tree = MerkleTree(list(leaves.values()))
    if tree.root != rewards_file.merkle_root:
        raise ProofGenerationError(
            f"merkle root mismatch: file has 0x{rewards_file.merkle_root.hex()}, "
            f"node rewards hash to 0x{tree.root.hex()}"
        )
    logger.debug("Generated proofs for %d node rewards", len(leaves))
    return {address: tree.proof(leaf) for address, leaf in leaves.items()}
