"""Core type definitions for the HUBBLE rollup replica."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Generic, TypeAlias, TypeVar

from eth_abi.packed import encode_packed
from eth_utils import keccak
from web3 import Web3

Bytes32: TypeAlias = bytes
Signature: TypeAlias = tuple[int, int]

T = TypeVar("T")

STATE_ABI_TYPES = ("uint32", "uint16", "uint256", "uint32", "uint256", "uint256")
PUBKEY_LENGTH = 128
ZERO_BYTES32: Bytes32 = b"\x00" * 32
EMPTY_SIGNATURE: Signature = (0, 0)


class Result(IntEnum):
    """Per-transaction verdict codes shared with the on-chain verifier."""

    OK = 0
    INVALID_TOKEN_AMOUNT = 1
    NOT_ENOUGH_BALANCE = 2
    BAD_FROM_TOKEN_TYPE = 3
    BAD_TO_TOKEN_TYPE = 4
    BAD_SIGNATURE = 5
    MISMATCHED_AMOUNT = 6
    BAD_WITHDRAW_ROOT = 7
    BAD_COMPRESSION = 8
    TOO_MANY_TX = 9
    BAD_NONCE = 10
    ACCOUNT_DOES_NOT_EXIST = 11
    REGISTRATION_FULL = 12
    PUBKEY_ALREADY_REGISTERED = 13
    BAD_SPOKE_ID = 14


class TxType(IntEnum):
    TRANSFER = 1
    MASS_MIGRATION = 2
    CREATE2_TRANSFER = 3
    BURN_CONSENT = 4


@dataclass(frozen=True, slots=True)
class State:
    """A balance leaf of the state tree."""

    pubkey_index: int
    token_type: int
    balance: int
    nonce: int
    burn: int = 0
    last_burn: int = 0

    def _values(self) -> list[int]:
        return [
            self.pubkey_index,
            self.token_type,
            self.balance,
            self.nonce,
            self.burn,
            self.last_burn,
        ]

    def encode(self) -> bytes:
        return encode_packed(list(STATE_ABI_TYPES), self._values())

    def to_state_leaf(self) -> Bytes32:
        return bytes(Web3.solidity_keccak(list(STATE_ABI_TYPES), self._values()))

    def debit(self, amount: int) -> State:
        return replace(self, balance=self.balance - amount, nonce=self.nonce + 1)

    def credit(self, amount: int) -> State:
        return replace(self, balance=self.balance + amount)

    def consent(self, amount: int) -> State:
        """Raise the standing burn consent by ``amount``; balance is untouched."""
        return replace(self, burn=self.burn + amount, nonce=self.nonce + 1)

    @classmethod
    def decode(cls, data: bytes) -> State:
        if len(data) != 4 + 2 + 32 + 4 + 32 + 32:
            raise ValueError(f"State encoding must be 106 bytes, got {len(data)}")
        return cls(
            pubkey_index=int.from_bytes(data[0:4], "big"),
            token_type=int.from_bytes(data[4:6], "big"),
            balance=int.from_bytes(data[6:38], "big"),
            nonce=int.from_bytes(data[38:42], "big"),
            burn=int.from_bytes(data[42:74], "big"),
            last_burn=int.from_bytes(data[74:106], "big"),
        )


@dataclass(frozen=True, slots=True)
class PDALeaf:
    """A registered public key (four uint256 words of a G2 point)."""

    pubkey: bytes

    def __post_init__(self) -> None:
        if len(self.pubkey) != PUBKEY_LENGTH:
            raise ValueError(
                f"Public key must be {PUBKEY_LENGTH} bytes, got {len(self.pubkey)}"
            )

    def to_leaf(self) -> Bytes32:
        return keccak(self.pubkey)


DUMMY_STATE = State(pubkey_index=0, token_type=0, balance=0, nonce=0)
DUMMY_PDA = PDALeaf(pubkey=b"\x00" * PUBKEY_LENGTH)


@dataclass(frozen=True, slots=True)
class Leaf(Generic[T]):
    """A tree slot. ``data`` is None when only the hash is known locally."""

    hash: Bytes32
    data: T | None = None


@dataclass(frozen=True, slots=True)
class StateMerkleProof:
    """State witness in the shape the verifier expects (``accountIP``)."""

    path: int
    state: State
    witness: tuple[Bytes32, ...]

    def to_sol_struct(self) -> dict[str, object]:
        return {
            "accountIP": {
                "pathToAccount": self.path,
                "account": {
                    "pubkeyIndex": self.state.pubkey_index,
                    "tokenType": self.state.token_type,
                    "balance": self.state.balance,
                    "nonce": self.state.nonce,
                    "burn": self.state.burn,
                    "lastBurn": self.state.last_burn,
                },
            },
            "siblings": list(self.witness),
        }


@dataclass(frozen=True, slots=True)
class PDAMerkleProof:
    path: int
    pubkey_leaf: PDALeaf
    witness: tuple[Bytes32, ...]

    def to_sol_struct(self) -> dict[str, object]:
        return {
            "_pda": {
                "pathToPubkey": self.path,
                "pubkey_leaf": {"pubkey": self.pubkey_leaf.pubkey},
            },
            "siblings": list(self.witness),
        }


@dataclass(frozen=True, slots=True)
class Registration:
    """Indices assigned while applying a create2 transfer."""

    pubkey_index: int
    state_index: int
    pubkey_proof: PDAMerkleProof


@dataclass(slots=True)
class CommitResult:
    """Outcome of applying one commitment's transactions to a state tree."""

    proofs: list[StateMerkleProof] = field(default_factory=list)
    safe: bool = True
    result: Result = Result.OK
    failed_index: int | None = None
    withdraw_leaves: list[Bytes32] = field(default_factory=list)
    registrations: list[Registration] = field(default_factory=list)
    total_amount: int = 0
    total_fee: int = 0
    token_type: int | None = None

    def reject(self, index: int, result: Result) -> CommitResult:
        self.safe = False
        self.result = result
        self.failed_index = index
        return self
