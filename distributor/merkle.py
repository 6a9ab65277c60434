"""
Sorted-pair keccak Merkle tree, compatible with OpenZeppelin's MerkleProof.verify.

Rules:
- leaves are de-duplicated and sorted ascending before the tree is built, so the same set of
  facts always gives the same root and proofs, whatever order they were produced in
- a parent is keccak256(min(a, b) ++ max(a, b)), proofs carry no left/right flags
- a node without a sibling is promoted to the next layer unchanged
- zero leaves is an error, a single leaf is its own root with an empty proof
"""
from itertools import zip_longest
from typing import Iterable, Optional, Sequence

import eth_utils as eth

from distributor.errors import EmptyTreeError, InvalidLeafInput, LeafNotFound
from distributor.models import HASH_SIZE, HexHash


def hash_pair(a: bytes, b: bytes) -> bytes:
    return eth.keccak(b"".join(sorted([a, b])))


class MerkleTree:
    def __init__(self, leaves: Iterable[bytes]):
        elements = sorted(set(leaves))
        if not elements:
            raise EmptyTreeError("Cannot build a merkle tree without leaves")
        for el in elements:
            if len(el) != HASH_SIZE:
                raise InvalidLeafInput(f"Leaf {el!r} is not {HASH_SIZE} bytes")

        self.elements: list[bytes] = elements
        self.layers = MerkleTree.get_layers(elements)
        self._index = {el: i for i, el in enumerate(elements)}

    @property
    def root(self) -> bytes:
        return self.layers[-1][0]

    @property
    def hex_root(self) -> HexHash:
        return eth.encode_hex(self.root)

    @property
    def hex_leaves(self) -> list[HexHash]:
        return [eth.encode_hex(el) for el in self.elements]

    def __len__(self) -> int:
        return len(self.elements)

    def __contains__(self, leaf: bytes) -> bool:
        return leaf in self._index

    def index_of(self, leaf: bytes) -> int:
        try:
            return self._index[leaf]
        except KeyError:
            raise LeafNotFound(f"{eth.encode_hex(leaf)} is not a leaf of this tree")

    def proof_at(self, idx: int) -> list[bytes]:
        """Sibling hashes met while climbing from leaf `idx` to the root, bottom up"""
        if not 0 <= idx < len(self.elements):
            raise LeafNotFound(f"No leaf at index {idx}")
        proof = []
        for layer in self.layers[:-1]:
            pair_idx = idx + 1 if idx % 2 == 0 else idx - 1
            # no sibling means the node was promoted, nothing to add
            if pair_idx < len(layer):
                proof.append(layer[pair_idx])
            idx //= 2
        return proof

    def proof(self, leaf: bytes) -> list[bytes]:
        return self.proof_at(self.index_of(leaf))

    def hex_proof(self, leaf: bytes) -> list[HexHash]:
        return [eth.encode_hex(p) for p in self.proof(leaf)]

    @property
    def proofs(self) -> dict[int, list[bytes]]:
        return {i: self.proof_at(i) for i in range(len(self.elements))}

    @staticmethod
    def get_layers(elements: list[bytes]) -> list[list[bytes]]:
        layers = [elements]
        while len(layers[-1]) > 1:
            layers.append(MerkleTree.get_next_layer(layers[-1]))
        return layers

    @staticmethod
    def get_next_layer(elements: list[bytes]) -> list[bytes]:
        return [
            MerkleTree.combined_hash(a, b)
            for a, b in zip_longest(elements[::2], elements[1::2])
        ]

    @staticmethod
    def combined_hash(a: bytes, b: Optional[bytes]) -> bytes:
        if b is None:
            return a
        return hash_pair(a, b)


def build_tree(leaves: Iterable[bytes]) -> MerkleTree:
    return MerkleTree(leaves)


def process_proof(leaf: bytes, proof: Sequence[bytes]) -> bytes:
    computed = leaf
    for sibling in proof:
        computed = hash_pair(computed, sibling)
    return computed


def verify(leaf: bytes, proof: Sequence[bytes], root: bytes) -> bool:
    """True if folding `proof` into `leaf` with the sorted-pair rule lands on `root`"""
    return process_proof(leaf, proof) == root
