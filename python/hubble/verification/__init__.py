"""Dispute replay of submitted commitments."""

from hubble.verification.dispute import DisputeReplayer, FraudProof

__all__ = ["DisputeReplayer", "FraudProof"]
