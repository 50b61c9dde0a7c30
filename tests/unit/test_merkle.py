"""
Merkle tree unit tests
Tests for hubble/tree/merkle.py

Covers zero hashes, root recomputation, inclusion proofs and the
batch-sized ``Tree`` used for commitment and withdraw roots.
"""
import pytest
from eth_utils import keccak

from hubble.core.errors import IndexOutOfRangeError, NotFoundError
from hubble.tree.merkle import (
    MAX_DEPTH,
    MerkleAccumulator,
    Tree,
    compute_root,
    parent_hash,
    verify_inclusion,
    zero_hashes,
)


def leaves(n: int) -> list[bytes]:
    return [keccak(bytes([i])) for i in range(n)]


def naive_root(hashes: list[bytes], depth: int) -> bytes:
    """Bottom-up recomputation over the fully padded leaf level."""
    level = hashes + [zero_hashes(0)[0]] * ((1 << depth) - len(hashes))
    for _ in range(depth):
        level = [parent_hash(level[i], level[i + 1]) for i in range(0, len(level), 2)]
    return level[0]


class TestZeroHashes:
    """Tests for the zero hash table."""

    def test_leaf_zero_is_keccak_of_zero_word(self):
        """Z[0] is keccak(bytes32(0)), not the zero word itself."""
        assert zero_hashes(0)[0].hex() == (
            "290decd9548b62a8d60345a988386fc84ba6bc95484008f6362f93160ef3e563"
        )

    def test_each_level_hashes_the_one_below(self):
        zeros = zero_hashes(4)
        for level in range(1, 5):
            assert zeros[level] == parent_hash(zeros[level - 1], zeros[level - 1])

    def test_depth_out_of_range(self):
        with pytest.raises(ValueError):
            zero_hashes(MAX_DEPTH + 1)


class TestAccumulatorRoot:
    """Tests for root computation over a populated prefix."""

    @pytest.mark.parametrize("n", [0, 1, 2, 3, 5, 8])
    def test_root_matches_padded_recomputation(self, n):
        acc = MerkleAccumulator(3, leaves(n))
        assert acc.root() == naive_root(leaves(n), 3)

    def test_empty_tree_root_is_top_zero(self):
        assert MerkleAccumulator(5).root() == zero_hashes(5)[5]

    def test_deep_tree_is_cheap(self):
        """A depth 32 tree only hashes its populated prefix."""
        acc = MerkleAccumulator(32, leaves(3))
        assert acc.node(31, 1) == zero_hashes(31)[31]
        assert len(acc.branches()[1]) == 2

    def test_too_many_leaves(self):
        with pytest.raises(ValueError):
            MerkleAccumulator(1, leaves(3))

    def test_padded_leaves(self):
        acc = MerkleAccumulator(2, leaves(1))
        assert acc.leaves() == leaves(1) + [zero_hashes(0)[0]] * 3


class TestInclusionProofs:
    """Tests for sibling paths and verification."""

    def test_every_index_verifies(self):
        acc = MerkleAccumulator(4, leaves(11))
        root = acc.root()
        for i, leaf in enumerate(leaves(11)):
            assert verify_inclusion(root, leaf, i, acc.siblings(i))

    def test_empty_slot_proves_zero_leaf(self):
        acc = MerkleAccumulator(4, leaves(3))
        assert verify_inclusion(acc.root(), zero_hashes(0)[0], 7, acc.siblings(7))

    def test_flipped_sibling_byte_fails(self):
        acc = MerkleAccumulator(3, leaves(6))
        witness = acc.siblings(2)
        tampered = bytearray(witness[1])
        tampered[0] ^= 0x01
        witness[1] = bytes(tampered)
        assert not verify_inclusion(acc.root(), leaves(6)[2], 2, witness)

    def test_wrong_index_fails(self):
        acc = MerkleAccumulator(3, leaves(6))
        assert not verify_inclusion(acc.root(), leaves(6)[2], 3, acc.siblings(2))

    def test_index_beyond_witness_width(self):
        acc = MerkleAccumulator(2, leaves(4))
        assert not verify_inclusion(acc.root(), leaves(4)[0], 4, acc.siblings(0))

    def test_compute_root_order(self):
        """Bit i of the index selects whether the node is the right child."""
        a, b = leaves(2)
        assert compute_root(a, 0, [b]) == keccak(a + b)
        assert compute_root(b, 1, [a]) == keccak(a + b)

    def test_siblings_out_of_range(self):
        with pytest.raises(IndexOutOfRangeError):
            MerkleAccumulator(2).siblings(4)


class TestEmptySubtree:
    """Tests for locating an aligned empty subtree."""

    def test_first_slot_after_prefix(self):
        acc = MerkleAccumulator(4, leaves(2))
        assert acc.find_empty_subtree_position(1) == 1

    def test_partial_node_is_not_empty(self):
        acc = MerkleAccumulator(4, leaves(3))
        assert acc.find_empty_subtree_position(1) == 2

    def test_zero_filled_node_is_reused(self):
        zero = zero_hashes(0)[0]
        acc = MerkleAccumulator(4, [zero, zero] + leaves(2))
        assert acc.find_empty_subtree_position(1) == 0

    def test_full_tree(self):
        acc = MerkleAccumulator(2, leaves(4))
        with pytest.raises(NotFoundError):
            acc.find_empty_subtree_position(1)


class TestTree:
    """Tests for the leaf-count sized tree."""

    def test_single_leaf_hashed_with_zero(self):
        (leaf,) = leaves(1)
        tree = Tree.merklize([leaf])
        assert tree.depth == 1
        assert tree.root == keccak(leaf + zero_hashes(0)[0])

    def test_depth_grows_with_leaves(self):
        assert Tree.merklize(leaves(2)).depth == 1
        assert Tree.merklize(leaves(3)).depth == 2
        assert Tree.merklize(leaves(5)).depth == 3

    def test_witness_verifies(self):
        tree = Tree.merklize(leaves(5))
        for i, leaf in enumerate(leaves(5)):
            assert verify_inclusion(tree.root, leaf, i, tree.witness(i))

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="empty"):
            Tree.merklize([])
