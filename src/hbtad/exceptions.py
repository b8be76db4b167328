"""
Custom exceptions for hbtad.

Per-packet dissection problems are not exceptions; they are reported on the
dissected record (see MalformedReason). These cover caller-input errors.
"""


class HbtadError(Exception):
    """Base exception for all hbtad errors."""
    pass


class DimensionMismatchError(HbtadError, ValueError):
    """Raised when vectors compared or clustered have unequal lengths."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Dimension mismatch: expected {expected}, got {actual}")


class InsufficientDataError(HbtadError, ValueError):
    """Raised when fewer vectors are supplied than clusters requested."""

    def __init__(self, n_vectors: int, n_clusters: int):
        self.n_vectors = n_vectors
        self.n_clusters = n_clusters
        super().__init__(
            f"Need at least {n_clusters} vectors to form {n_clusters} clusters, got {n_vectors}"
        )
