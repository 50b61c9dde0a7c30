"""Amount codec and transaction serialisation."""

from hubble.encoding.codec import DecimalCodec, USDT
from hubble.encoding.tx import Transfer, MassMigration, Create2Transfer, BurnConsent

__all__ = [
    "DecimalCodec",
    "USDT",
    "Transfer",
    "MassMigration",
    "Create2Transfer",
    "BurnConsent",
]
