"""Sorted-pair keccak Merkle tree over (address, uint256) leaves.

Leaves are packed exactly as Solidity's abi.encodePacked(address, uint256), so an
on-chain MerkleProof.verify with the same leaf order accepts every proof.
"""

from dataclasses import dataclass, field
from typing import Sequence

from eth_utils import keccak


def encode_leaf(address: str, value: int) -> bytes:
    """keccak256(20-byte address || 32-byte big-endian value)."""
    address_bytes = bytes.fromhex(address[2:].rjust(40, "0"))
    return keccak(address_bytes + value.to_bytes(32, "big"))


def hash_pair(a: bytes, b: bytes) -> bytes:
    first, second = (a, b) if a <= b else (b, a)
    return keccak(first + second)


def to_hex(b: bytes) -> str:
    return "0x" + b.hex()


@dataclass
class MerkleTree:
    layers: list[list[bytes]] = field(default_factory=list)

    @property
    def leaves(self) -> list[bytes]:
        return self.layers[0] if self.layers else []

    @property
    def root(self) -> bytes:
        if not self.layers or not self.layers[-1]:
            return b""
        return self.layers[-1][0]

    @property
    def hex_root(self) -> str:
        return to_hex(self.root)

    def proof(self, index: int) -> list[bytes]:
        """Sibling hashes from leaf `index` up to the root. Levels with no sibling add nothing."""
        if index < 0 or index >= len(self.leaves):
            raise IndexError(f"Leaf index {index} out of range")
        path: list[bytes] = []
        for layer in self.layers[:-1]:
            sibling = index - 1 if index % 2 else index + 1
            if sibling < len(layer):
                path.append(layer[sibling])
            index //= 2
        return path

    def hex_proof(self, index: int) -> list[str]:
        return [to_hex(p) for p in self.proof(index)]


def build_tree(leaves: Sequence[bytes]) -> MerkleTree:
    """Pairwise combine level by level; an odd node is promoted unchanged."""
    if not leaves:
        return MerkleTree(layers=[[]])

    layers = [list(leaves)]
    while len(layers[-1]) > 1:
        current = layers[-1]
        nxt = [hash_pair(current[i], current[i + 1]) for i in range(0, len(current) - 1, 2)]
        if len(current) % 2:
            nxt.append(current[-1])
        layers.append(nxt)
    return MerkleTree(layers=layers)


def verify_proof(leaf: bytes, proof: Sequence[bytes], root: bytes) -> bool:
    computed = leaf
    for sibling in proof:
        computed = hash_pair(computed, sibling)
    return computed == root


def commit_entries(entries: Sequence) -> MerkleTree:
    """Build the tree for entries exposing `commitment -> (address, value)` and stamp leaf/proof on each."""
    leaves = [encode_leaf(*entry.commitment) for entry in entries]
    tree = build_tree(leaves)
    for i, entry in enumerate(entries):
        entry.leaf = to_hex(leaves[i])
        entry.proof = tree.hex_proof(i)
    return tree
