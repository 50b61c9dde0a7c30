"""Exception hierarchy for HUBBLE.

Structural and encoding failures are raised. Per-transaction business rule
violations are never raised; they are reported as ``Result`` codes.
"""

from __future__ import annotations


class HubbleError(Exception):
    """Base class for all HUBBLE exceptions."""


class StructuralError(HubbleError):
    """The requested tree or batch operation is impossible."""


class TreeFullError(StructuralError):
    def __init__(self, size: int) -> None:
        super().__init__(f"Tree is full, all {size} leaves are taken")
        self.size = size


class IndexOutOfRangeError(StructuralError, IndexError):
    def __init__(self, index: int, length: int) -> None:
        super().__init__(f"Index {index} out of range for {length} leaves")
        self.index = index
        self.length = length


class MissingDataError(StructuralError):
    def __init__(self, index: int, kind: str = "Leaf") -> None:
        super().__init__(f"{kind} data does not exist at index {index}")
        self.index = index


class NotFoundError(StructuralError):
    pass


class EmptyBatchError(StructuralError):
    def __init__(self) -> None:
        super().__init__("A batch needs at least one commitment")


class NoCheckpointError(StructuralError):
    def __init__(self) -> None:
        super().__init__("restore_checkpoint() called before set_checkpoint()")


class ProofError(StructuralError):
    """A supplied witness does not verify against the claimed root."""


class EncodingError(HubbleError, ValueError):
    """A value cannot be represented by the fixed-point codec."""
