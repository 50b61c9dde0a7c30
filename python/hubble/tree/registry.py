"""Registry of public keys (the account tree)."""

from __future__ import annotations

import structlog

from hubble.core.types import DUMMY_PDA, Bytes32, PDALeaf, PDAMerkleProof
from hubble.tree.store import LeafStore

logger = structlog.get_logger()


class AccountRegistry(LeafStore[PDALeaf]):
    """Store of registered public keys; a leaf is ``keccak(pubkey)``."""

    def __init__(self, level: int) -> None:
        super().__init__(level, PDALeaf.to_leaf, DUMMY_PDA, kind="Public key")
        self._index: dict[bytes, int] = {}

    def _reindex(self) -> None:
        index: dict[bytes, int] = {}
        for i, item in enumerate(self.items):
            if item.data is not None:
                index.setdefault(item.data.pubkey, i)
        self._index = index

    def insert(self, data: PDALeaf) -> int:
        with self._lock:
            index = super().insert(data)
            self._index.setdefault(data.pubkey, index)
        return index

    def insert_public_key(self, pubkey: bytes) -> int:
        index = self.insert(PDALeaf(pubkey=pubkey))
        logger.debug("pubkey_registered", index=index)
        return index

    register = insert_public_key

    def update(self, index: int, data: PDALeaf) -> None:
        with self._lock:
            super().update(index, data)
            self._reindex()

    def update_hash(self, index: int, leaf_hash: Bytes32) -> None:
        with self._lock:
            super().update_hash(index, leaf_hash)
            self._reindex()

    def restore_checkpoint(self) -> None:
        with self._lock:
            super().restore_checkpoint()
            self._reindex()

    def index_of(self, pubkey: bytes) -> int | None:
        return self._index.get(pubkey)

    def is_registered(self, pubkey: bytes) -> bool:
        return pubkey in self._index

    def get_pubkey(self, index: int) -> bytes | None:
        leaf = self.data(index)
        return None if leaf is None else leaf.pubkey

    def get_pda_merkle_proof(self, index: int, allow_dummy: bool = False) -> PDAMerkleProof:
        leaf, witness = self.get_proof(index, allow_dummy)
        return PDAMerkleProof(path=index, pubkey_leaf=leaf, witness=tuple(witness))

    def copy(self) -> AccountRegistry:
        clone = AccountRegistry(self.level)
        self._clone_into(clone)
        clone._reindex()
        return clone
