"""Transaction types, sign messages and compressed commitment serialisation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

from eth_abi.packed import encode_packed

from hubble.core.types import Registration, TxType
from hubble.encoding.codec import DecimalCodec


@dataclass(frozen=True, slots=True)
class Transfer:
    from_index: int
    to_index: int
    token_type: int
    amount: int
    fee: int
    nonce: int

    tx_type = TxType.TRANSFER

    def message(self) -> bytes:
        return encode_packed(
            ["uint8", "uint32", "uint32", "uint16", "uint32", "uint256", "uint256"],
            [
                int(self.tx_type),
                self.from_index,
                self.to_index,
                self.token_type,
                self.nonce,
                self.amount,
                self.fee,
            ],
        )

    def encode(self, codec: DecimalCodec) -> bytes:
        return (
            encode_packed(["uint32", "uint32"], [self.from_index, self.to_index])
            + codec.encode_int(self.amount)
            + codec.encode_int(self.fee)
        )


@dataclass(frozen=True, slots=True)
class MassMigration:
    from_index: int
    token_type: int
    amount: int
    spoke_id: int
    fee: int
    nonce: int

    tx_type = TxType.MASS_MIGRATION

    def message(self) -> bytes:
        return encode_packed(
            ["uint8", "uint32", "uint32", "uint16", "uint32", "uint256", "uint256"],
            [
                int(self.tx_type),
                self.from_index,
                self.spoke_id,
                self.token_type,
                self.nonce,
                self.amount,
                self.fee,
            ],
        )

    def encode(self, codec: DecimalCodec) -> bytes:
        return (
            encode_packed(["uint32"], [self.from_index])
            + codec.encode_int(self.amount)
            + codec.encode_int(self.fee)
        )


@dataclass(frozen=True, slots=True)
class Create2Transfer:
    """Transfer to a public key that has no state leaf yet."""

    from_index: int
    to_pubkey: bytes
    token_type: int
    amount: int
    fee: int
    nonce: int

    tx_type = TxType.CREATE2_TRANSFER

    def message(self) -> bytes:
        return encode_packed(
            ["uint8", "uint32", "bytes", "uint16", "uint32", "uint256", "uint256"],
            [
                int(self.tx_type),
                self.from_index,
                self.to_pubkey,
                self.token_type,
                self.nonce,
                self.amount,
                self.fee,
            ],
        )

    def encode(self, codec: DecimalCodec, to_index: int, to_pubkey_index: int) -> bytes:
        return (
            encode_packed(
                ["uint32", "uint32", "uint32"],
                [self.from_index, to_index, to_pubkey_index],
            )
            + codec.encode_int(self.amount)
            + codec.encode_int(self.fee)
        )


@dataclass(frozen=True, slots=True)
class BurnConsent:
    """Standing consent to have ``amount`` burnt from the sender's balance."""

    from_index: int
    amount: int
    nonce: int

    tx_type = TxType.BURN_CONSENT

    def message(self) -> bytes:
        return encode_packed(
            ["uint8", "uint32", "uint32", "uint256"],
            [int(self.tx_type), self.from_index, self.nonce, self.amount],
        )

    def encode(self, codec: DecimalCodec) -> bytes:
        return encode_packed(["uint32"], [self.from_index]) + codec.encode_int(self.amount)


Tx = Union[Transfer, MassMigration, Create2Transfer]
SignedTx = Union[Tx, BurnConsent]


def serialize_transfers(txs: Sequence[Transfer], codec: DecimalCodec) -> bytes:
    return b"".join(tx.encode(codec) for tx in txs)


def serialize_mass_migrations(txs: Sequence[MassMigration], codec: DecimalCodec) -> bytes:
    return b"".join(tx.encode(codec) for tx in txs)


def serialize_burn_consents(txs: Sequence[BurnConsent], codec: DecimalCodec) -> bytes:
    return b"".join(tx.encode(codec) for tx in txs)


def serialize_create2_transfers(
    txs: Sequence[Create2Transfer],
    registrations: Sequence[Registration],
    codec: DecimalCodec,
) -> bytes:
    """Serialise create2 transfers with the indices assigned when they were applied."""
    if len(txs) != len(registrations):
        raise ValueError(
            f"{len(txs)} transactions but {len(registrations)} registrations"
        )
    return b"".join(
        tx.encode(codec, reg.state_index, reg.pubkey_index)
        for tx, reg in zip(txs, registrations)
    )
