from hubble.commitment.commitments import (
    TransferCommitment,
    MassMigrationCommitment,
    Create2TransferCommitment,
    Batch,
)

__all__ = [
    "TransferCommitment",
    "MassMigrationCommitment",
    "Create2TransferCommitment",
    "Batch",
]
