"""
Amount codec unit tests
Tests for hubble/encoding/codec.py
"""
from decimal import Decimal

import pytest

from hubble.core.errors import EncodingError
from hubble.encoding.codec import USDT, DecimalCodec


class TestEncoding:
    """Tests for mantissa/exponent packing."""

    def test_human_amount_round_trip(self):
        encoded = USDT.encode("39.99")
        assert len(encoded) == 2
        assert USDT.decode(encoded) == Decimal("39.99")

    def test_trailing_zeros_move_into_exponent(self):
        assert USDT.factorize(39_990_000) == (4, 3999)
        assert USDT.encode_int(39_990_000) == ((4 << 12) + 3999).to_bytes(2, "big")

    def test_zero_is_encodable(self):
        assert USDT.is_encodable(0)
        assert USDT.decode_int(USDT.encode_int(0)) == 0

    def test_mantissa_overflow(self):
        with pytest.raises(EncodingError):
            USDT.encode_int(4096)
        assert not USDT.is_encodable(4097)

    def test_negative_input(self):
        with pytest.raises(EncodingError):
            USDT.encode_int(-1)

    def test_exponent_is_bounded(self):
        """Zeros beyond the largest exponent stay in the mantissa."""
        assert USDT.factorize(10**16) == (15, 10)

    def test_encoding_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            USDT.encode_int(123_456)


class TestDecoding:
    """Tests for decoding raw words."""

    def test_decode_bytes_and_int(self):
        assert USDT.decode_int(b"\x10\x01") == 10
        assert USDT.decode_int(0x1001) == 10

    def test_decode_rejects_wide_values(self):
        with pytest.raises(EncodingError):
            USDT.decode_int(1 << 16)


class TestCasting:
    """Tests for conversions between human and base units."""

    def test_cast_int_is_exact(self):
        assert USDT.cast_int("1000.0") == 1_000_000_000
        assert USDT.cast_int(0.01) == 10_000
        assert USDT.to_units(960_000_000) == Decimal("960")

    def test_cast_rounds_down(self):
        assert USDT.cast(123_456_789) == 123_400_000
        assert USDT.is_encodable(USDT.cast(123_456_789))

    def test_cast_keeps_encodable_values(self):
        assert USDT.cast(3999) == 3999

    def test_max_value(self):
        assert USDT.max_value == 4095 * 10**15
        assert USDT.is_encodable(USDT.max_value)
        with pytest.raises(EncodingError):
            USDT.cast(USDT.max_value * 10)

    def test_odd_bit_widths_rejected(self):
        with pytest.raises(ValueError):
            DecimalCodec(4, 11, 6)
