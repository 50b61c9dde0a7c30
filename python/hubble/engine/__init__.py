"""Stateful and stateless transaction processing."""

from hubble.engine.processor import TransactionEngine
from hubble.engine.signature import SignatureScheme

__all__ = ["TransactionEngine", "SignatureScheme"]
