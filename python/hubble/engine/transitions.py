"""Stateless replay of a commitment from state witnesses.

These functions hold no state: given a pre-state root, the transactions and
the witnesses recorded by ``TransactionEngine`` they recompute the post-state
root and the first failing ``Result``, the way the on-chain transition
library does during a dispute. A witness that does not verify is a broken
dispute input and raises ``ProofError``.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

from hubble.core.errors import ProofError
from hubble.core.types import Bytes32, Result, State, StateMerkleProof
from hubble.encoding.codec import USDT, DecimalCodec
from hubble.encoding.tx import (
    BurnConsent,
    Create2Transfer,
    MassMigration,
    SignedTx,
    Transfer,
    Tx,
)
from hubble.tree.merkle import Tree, compute_root, verify_inclusion, zero_hashes


class Transition(NamedTuple):
    post_root: Bytes32
    result: Result


def _empty_leaf() -> Bytes32:
    return zero_hashes(0)[0]


def withdraw_leaf(pubkey_index: int, token_type: int, amount: int) -> Bytes32:
    return State(pubkey_index, token_type, amount, 0).to_state_leaf()


def withdraw_root_of(leaves: Sequence[Bytes32]) -> Bytes32:
    return Tree.merklize(leaves).root


def _take(proofs: Sequence[StateMerkleProof], cursor: int) -> StateMerkleProof:
    if cursor >= len(proofs):
        raise ProofError(f"Missing state proof #{cursor}, only {len(proofs)} supplied")
    return proofs[cursor]


def verify_state(root: Bytes32, proof: StateMerkleProof, index: int) -> State | None:
    """Return the proven state, or None when the witness proves an empty slot."""
    if proof.path != index:
        raise ProofError(f"Proof is for path {proof.path}, expected {index}")
    if verify_inclusion(root, proof.state.to_state_leaf(), index, proof.witness):
        return proof.state
    if verify_inclusion(root, _empty_leaf(), index, proof.witness):
        return None
    raise ProofError(f"State proof for index {index} does not match root {root.hex()}")


def _check_amount(tx: Tx, codec: DecimalCodec) -> Result:
    if tx.amount <= 0:
        return Result.INVALID_TOKEN_AMOUNT
    if not codec.is_encodable(tx.amount) or not codec.is_encodable(tx.fee):
        return Result.INVALID_TOKEN_AMOUNT
    return Result.OK


def _process_sender(
    root: Bytes32,
    tx: Tx,
    token_type: int,
    proof: StateMerkleProof,
) -> tuple[Bytes32, Result, State | None]:
    sender = verify_state(root, proof, tx.from_index)
    if sender is None:
        return root, Result.ACCOUNT_DOES_NOT_EXIST, None
    if sender.token_type != tx.token_type or tx.token_type != token_type:
        return root, Result.BAD_FROM_TOKEN_TYPE, sender
    if sender.balance < tx.amount + tx.fee:
        return root, Result.NOT_ENOUGH_BALANCE, sender
    if sender.nonce != tx.nonce:
        return root, Result.BAD_NONCE, sender
    new_sender = sender.debit(tx.amount + tx.fee)
    return compute_root(new_sender.to_state_leaf(), tx.from_index, proof.witness), Result.OK, sender


def _process_receiver(
    root: Bytes32,
    index: int,
    amount: int,
    token_type: int,
    proof: StateMerkleProof,
) -> tuple[Bytes32, Result]:
    receiver = verify_state(root, proof, index)
    if receiver is None:
        return root, Result.ACCOUNT_DOES_NOT_EXIST
    if receiver.token_type != token_type:
        return root, Result.BAD_TO_TOKEN_TYPE
    return compute_root(receiver.credit(amount).to_state_leaf(), index, proof.witness), Result.OK


def process_transfer(
    root: Bytes32,
    tx: Transfer,
    token_type: int,
    sender_proof: StateMerkleProof,
    receiver_proof: StateMerkleProof,
    codec: DecimalCodec = USDT,
) -> Transition:
    result = _check_amount(tx, codec)
    if result != Result.OK:
        return Transition(root, result)
    root, result, _ = _process_sender(root, tx, token_type, sender_proof)
    if result != Result.OK:
        return Transition(root, result)
    return Transition(*_process_receiver(root, tx.to_index, tx.amount, token_type, receiver_proof))


def _process_fee(
    root: Bytes32,
    fee_receiver: int,
    total_fee: int,
    token_type: int | None,
    proof: StateMerkleProof,
) -> Transition:
    if token_type is None:
        receiver = verify_state(root, proof, fee_receiver)
        if receiver is None:
            return Transition(root, Result.ACCOUNT_DOES_NOT_EXIST)
        token_type = receiver.token_type
    return Transition(*_process_receiver(root, fee_receiver, total_fee, token_type, proof))


def _commit_token(txs: Sequence[Tx]) -> int | None:
    return txs[0].token_type if txs else None


def process_transfer_commit(
    state_root: Bytes32,
    txs: Sequence[Transfer],
    proofs: Sequence[StateMerkleProof],
    fee_receiver: int,
    codec: DecimalCodec = USDT,
    max_txs_per_commit: int = 32,
) -> Transition:
    """Proofs are ``[sender, receiver] * len(txs) + [fee_receiver]``."""
    if len(txs) > max_txs_per_commit:
        return Transition(state_root, Result.TOO_MANY_TX)
    token = _commit_token(txs)
    root = state_root
    total_fee = 0
    for i, tx in enumerate(txs):
        root, result = process_transfer(
            root, tx, token, _take(proofs, 2 * i), _take(proofs, 2 * i + 1), codec
        )
        if result != Result.OK:
            return Transition(root, result)
        total_fee += tx.fee
    return _process_fee(root, fee_receiver, total_fee, token, _take(proofs, 2 * len(txs)))


def process_mass_migration(
    root: Bytes32,
    tx: MassMigration,
    token_type: int,
    sender_proof: StateMerkleProof,
    codec: DecimalCodec = USDT,
) -> tuple[Bytes32, Result, State | None]:
    result = _check_amount(tx, codec)
    if result != Result.OK:
        return root, result, None
    return _process_sender(root, tx, token_type, sender_proof)


def process_mass_migration_commit(
    state_root: Bytes32,
    txs: Sequence[MassMigration],
    proofs: Sequence[StateMerkleProof],
    fee_receiver: int,
    spoke_id: int,
    token_id: int,
    amount: int,
    withdraw_root: Bytes32,
    codec: DecimalCodec = USDT,
    max_txs_per_commit: int = 32,
) -> Transition:
    """Proofs are ``[sender] * len(txs) + [fee_receiver]``.

    Besides the state transition, the commitment's spoke, token, total
    amount and withdraw root must agree with the transactions.
    """
    if len(txs) > max_txs_per_commit:
        return Transition(state_root, Result.TOO_MANY_TX)
    root = state_root
    total_amount = 0
    total_fee = 0
    leaves: list[Bytes32] = []
    for i, tx in enumerate(txs):
        if tx.spoke_id != spoke_id:
            return Transition(root, Result.BAD_SPOKE_ID)
        root, result, sender = process_mass_migration(root, tx, token_id, _take(proofs, i), codec)
        if result != Result.OK:
            return Transition(root, result)
        leaves.append(withdraw_leaf(sender.pubkey_index, token_id, tx.amount))
        total_amount += tx.amount
        total_fee += tx.fee
    if total_amount != amount:
        return Transition(root, Result.MISMATCHED_AMOUNT)
    if leaves and withdraw_root_of(leaves) != withdraw_root:
        return Transition(root, Result.BAD_WITHDRAW_ROOT)
    return _process_fee(root, fee_receiver, total_fee, token_id, _take(proofs, len(txs)))


def process_create2_transfer(
    root: Bytes32,
    tx: Create2Transfer,
    token_type: int,
    to_index: int,
    to_pubkey_index: int,
    sender_proof: StateMerkleProof,
    receiver_proof: StateMerkleProof,
    codec: DecimalCodec = USDT,
) -> Transition:
    result = _check_amount(tx, codec)
    if result != Result.OK:
        return Transition(root, result)
    root, result, _ = _process_sender(root, tx, token_type, sender_proof)
    if result != Result.OK:
        return Transition(root, result)
    if verify_state(root, receiver_proof, to_index) is not None:
        return Transition(root, Result.REGISTRATION_FULL)
    created = State(to_pubkey_index, token_type, tx.amount, 0)
    return Transition(compute_root(created.to_state_leaf(), to_index, receiver_proof.witness), Result.OK)


def process_create2_transfer_commit(
    state_root: Bytes32,
    txs: Sequence[Create2Transfer],
    proofs: Sequence[StateMerkleProof],
    targets: Sequence[tuple[int, int]],
    fee_receiver: int,
    codec: DecimalCodec = USDT,
    max_txs_per_commit: int = 32,
) -> Transition:
    """``targets`` holds the ``(state_index, pubkey_index)`` each transfer created."""
    if len(txs) > max_txs_per_commit:
        return Transition(state_root, Result.TOO_MANY_TX)
    if len(targets) != len(txs):
        raise ProofError(f"{len(txs)} create2 transfers but {len(targets)} targets")
    token = _commit_token(txs)
    root = state_root
    total_fee = 0
    for i, (tx, (to_index, to_pubkey_index)) in enumerate(zip(txs, targets)):
        root, result = process_create2_transfer(
            root,
            tx,
            token,
            to_index,
            to_pubkey_index,
            _take(proofs, 2 * i),
            _take(proofs, 2 * i + 1),
            codec,
        )
        if result != Result.OK:
            return Transition(root, result)
        total_fee += tx.fee
    return _process_fee(root, fee_receiver, total_fee, token, _take(proofs, 2 * len(txs)))


def process_burn_consent(
    root: Bytes32,
    tx: BurnConsent,
    proof: StateMerkleProof,
    codec: DecimalCodec = USDT,
) -> Transition:
    if tx.amount <= 0 or not codec.is_encodable(tx.amount):
        return Transition(root, Result.INVALID_TOKEN_AMOUNT)
    sender = verify_state(root, proof, tx.from_index)
    if sender is None:
        return Transition(root, Result.ACCOUNT_DOES_NOT_EXIST)
    if sender.balance < sender.burn + tx.amount:
        return Transition(root, Result.NOT_ENOUGH_BALANCE)
    if sender.nonce != tx.nonce:
        return Transition(root, Result.BAD_NONCE)
    consented = sender.consent(tx.amount)
    post_root = compute_root(consented.to_state_leaf(), tx.from_index, proof.witness)
    return Transition(post_root, Result.OK)


def process_burn_consent_commit(
    state_root: Bytes32,
    txs: Sequence[BurnConsent],
    proofs: Sequence[StateMerkleProof],
    codec: DecimalCodec = USDT,
    max_txs_per_commit: int = 32,
) -> Transition:
    """Proofs are ``[sender] * len(txs)``; burn consents carry no fee."""
    if len(txs) > max_txs_per_commit:
        return Transition(state_root, Result.TOO_MANY_TX)
    root = state_root
    for i, tx in enumerate(txs):
        root, result = process_burn_consent(root, tx, _take(proofs, i), codec)
        if result != Result.OK:
            return Transition(root, result)
    return Transition(root, Result.OK)


def check_signer_account(
    state_root: Bytes32,
    txs: Sequence[SignedTx],
    signers: Sequence[int],
    target: int,
    proof: StateMerkleProof,
) -> Result:
    """Check that transaction ``target`` was signed by its sender's key.

    ``signers`` holds the registry index claimed as signer of each
    transaction. The proof must show the sender's state leaf under
    ``state_root`` carrying that same ``pubkey_index``.
    """
    if len(signers) != len(txs):
        raise ProofError(f"{len(txs)} transactions but {len(signers)} signers")
    tx = txs[target]
    sender = verify_state(state_root, proof, tx.from_index)
    if sender is None or sender.pubkey_index != signers[target]:
        return Result.BAD_SIGNATURE
    return Result.OK
