"""
Common test fixtures shared by all modules.

Provides factory functions and constants for:
- funded state trees (sender, receiver, fee receiver, a foreign-token account)
- stand-in public keys derived from secret keys
- XorScheme, a deterministic signature scheme
"""

from eth_utils import keccak

from hubble.core.types import PUBKEY_LENGTH, State
from hubble.encoding.codec import USDT
from hubble.tree.registry import AccountRegistry
from hubble.tree.state import StateTree

TOKEN = 1
OTHER_TOKEN = 2
SENDER = 0
RECEIVER = 1
FEE_RECEIVER = 2
FOREIGN = 3
DOMAIN = b"\x11" * 32


def pubkey_of(secret_key: bytes) -> bytes:
    """A 128-byte stand-in public key derived from the secret key."""
    return keccak(secret_key) * (PUBKEY_LENGTH // 32)


class XorScheme:
    """Deterministic signature scheme: a signature is keccak(pubkey || message).

    Aggregation XORs the two 128-bit halves. Not secure, only consistent.
    """

    def _single(self, pubkey: bytes, message: bytes) -> tuple[int, int]:
        digest = keccak(pubkey + message)
        return int.from_bytes(digest[:16], "big"), int.from_bytes(digest[16:], "big")

    def sign(self, message: bytes, secret_key: bytes) -> tuple[int, int]:
        return self._single(pubkey_of(secret_key), message)

    def aggregate(self, signatures):
        x, y = 0, 0
        for sx, sy in signatures:
            x ^= sx
            y ^= sy
        return x, y

    def verify_aggregate(self, signature, pubkeys, messages, domain) -> bool:
        if len(pubkeys) != len(messages):
            return False
        expected = self.aggregate(
            [self._single(pk, msg) for pk, msg in zip(pubkeys, messages)]
        )
        return tuple(signature) == expected


def make_states() -> list[State]:
    return [
        State(pubkey_index=0, token_type=TOKEN, balance=USDT.cast_int("1000.0"), nonce=0),
        State(pubkey_index=1, token_type=TOKEN, balance=0, nonce=0),
        State(pubkey_index=2, token_type=TOKEN, balance=0, nonce=0),
        State(pubkey_index=3, token_type=OTHER_TOKEN, balance=100, nonce=0),
    ]


def make_state_tree(states=None, depth: int = 8) -> StateTree:
    tree = StateTree.new(depth)
    tree.create_state_bulk(make_states() if states is None else states)
    return tree


def make_secret_keys(count: int = 4) -> list[bytes]:
    return [bytes([i + 1]) * 32 for i in range(count)]


def make_registry(secret_keys, depth: int = 8) -> AccountRegistry:
    """Registry where pubkey index ``i`` belongs to ``secret_keys[i]``."""
    registry = AccountRegistry(depth)
    for sk in secret_keys:
        registry.insert_public_key(pubkey_of(sk))
    return registry
