"""Lossy fixed-point codec for token amounts in compressed transactions.

An encoded amount is ``exponent << mantissa_bits | mantissa`` and decodes to
``mantissa * 10 ** exponent`` base units. ``place`` is the number of decimal
places in one human-readable unit.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_EVEN
from typing import Union

from hubble.core.errors import EncodingError

Amount = Union[int, float, str, Decimal]


class DecimalCodec:
    """Encodes integer amounts as a power-of-ten mantissa/exponent pair."""

    def __init__(self, exponent_bits: int, mantissa_bits: int, place: int) -> None:
        if (exponent_bits + mantissa_bits) % 8:
            raise ValueError("exponent_bits + mantissa_bits must be a whole number of bytes")
        self.exponent_bits = exponent_bits
        self.mantissa_bits = mantissa_bits
        self.place = place
        self.mantissa_max = (1 << mantissa_bits) - 1
        self.exponent_max = (1 << exponent_bits) - 1
        self.exponent_mask = self.exponent_max << mantissa_bits
        self.bytes_length = (mantissa_bits + exponent_bits) // 8

    def __repr__(self) -> str:
        return (
            f"DecimalCodec(exponent_bits={self.exponent_bits}, "
            f"mantissa_bits={self.mantissa_bits}, place={self.place})"
        )

    def cast_int(self, value: Amount) -> int:
        """Convert a human amount such as ``39.99`` into base units exactly."""
        scaled = Decimal(str(value)) * (Decimal(10) ** self.place)
        return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))

    def to_units(self, integer: int) -> Decimal:
        return Decimal(integer) / (Decimal(10) ** self.place)

    def factorize(self, integer: int) -> tuple[int, int]:
        """Split ``integer`` into ``(exponent, mantissa)`` or raise EncodingError."""
        if integer < 0:
            raise EncodingError(f"Can not encode negative input {integer}")
        exponent = 0
        mantissa = integer
        while exponent < self.exponent_max and mantissa != 0 and mantissa % 10 == 0:
            mantissa //= 10
            exponent += 1
        if mantissa > self.mantissa_max:
            raise EncodingError(
                f"Can not encode input {integer}, mantissa {mantissa} "
                f"should not be larger than {self.mantissa_max}"
            )
        return exponent, mantissa

    def is_encodable(self, integer: int) -> bool:
        try:
            self.factorize(integer)
        except EncodingError:
            return False
        return True

    def encode_int(self, integer: int) -> bytes:
        exponent, mantissa = self.factorize(integer)
        return ((exponent << self.mantissa_bits) + mantissa).to_bytes(
            self.bytes_length, "big"
        )

    def decode_int(self, data: bytes | int) -> int:
        raw = int.from_bytes(data, "big") if isinstance(data, (bytes, bytearray)) else data
        if raw >> (self.mantissa_bits + self.exponent_bits):
            raise EncodingError(f"Encoded value {raw:#x} exceeds {self.bytes_length} bytes")
        mantissa = raw & self.mantissa_max
        exponent = (raw & self.exponent_mask) >> self.mantissa_bits
        return mantissa * 10**exponent

    def encode(self, value: Amount) -> bytes:
        return self.encode_int(self.cast_int(value))

    def decode(self, data: bytes | int) -> Decimal:
        return self.to_units(self.decode_int(data))

    def cast(self, integer: int) -> int:
        """Round ``integer`` down to the closest encodable amount."""
        if integer < 0:
            raise EncodingError(f"Can not cast negative input {integer}")
        exponent = 0
        mantissa = integer
        while mantissa > self.mantissa_max:
            if exponent == self.exponent_max:
                raise EncodingError(f"{integer} exceeds the largest encodable amount")
            mantissa //= 10
            exponent += 1
        return mantissa * 10**exponent

    @property
    def max_value(self) -> int:
        return self.mantissa_max * 10**self.exponent_max


USDT = DecimalCodec(4, 12, 6)
