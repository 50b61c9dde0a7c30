"""Boundary to the aggregate signature scheme.

Curve arithmetic lives outside this package; the engine only needs a
scheme object implementing ``SignatureScheme``.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

import structlog

from hubble.core.types import Bytes32, Result, Signature
from hubble.encoding.tx import SignedTx
from hubble.tree.registry import AccountRegistry
from hubble.tree.state import StateTree

logger = structlog.get_logger()


@runtime_checkable
class SignatureScheme(Protocol):
    def sign(self, message: bytes, secret_key: bytes) -> Signature: ...

    def aggregate(self, signatures: Sequence[Signature]) -> Signature: ...

    def verify_aggregate(
        self,
        signature: Signature,
        pubkeys: Sequence[bytes],
        messages: Sequence[bytes],
        domain: Bytes32,
    ) -> bool: ...


def check_signature(
    scheme: SignatureScheme,
    signature: Signature,
    txs: Sequence[SignedTx],
    state_tree: StateTree,
    registry: AccountRegistry,
    domain: Bytes32,
) -> Result:
    """Verify the aggregate signature of a commitment's transactions.

    Each sender's public key is resolved through its state leaf's
    ``pubkey_index`` in the registry.
    """
    pubkeys: list[bytes] = []
    messages: list[bytes] = []
    for tx in txs:
        sender = state_tree.get_state(tx.from_index)
        if sender is None:
            logger.warning("signature_sender_missing", from_index=tx.from_index)
            return Result.BAD_SIGNATURE
        pubkey = registry.get_pubkey(sender.pubkey_index)
        if pubkey is None:
            logger.warning("signature_pubkey_missing", pubkey_index=sender.pubkey_index)
            return Result.BAD_SIGNATURE
        pubkeys.append(pubkey)
        messages.append(tx.message())

    if not scheme.verify_aggregate(signature, pubkeys, messages, domain):
        logger.warning("signature_invalid", txs=len(txs))
        return Result.BAD_SIGNATURE
    return Result.OK
