"""Exception hierarchy for history-explorer.

Data conditions (missing history, absent relationships, non-rehydratable
targets) are never raised. Only schema/implementation mismatches and corrupt
stored snapshots surface as exceptions.
"""


class HistoryExplorerError(Exception):
    """Base class for all history-explorer errors."""


class SchemaError(HistoryExplorerError):
    """The navigation schema does not describe a type or relationship it was asked about.

    Args:
        model_type: The type whose metadata lookup failed.
        detail: Human-readable description of the mismatch.
    """

    def __init__(self, model_type: type, detail: str) -> None:
        self.model_type = model_type
        self.detail = detail
        super().__init__(f"{model_type.__name__}: {detail}")


class SnapshotDecodeError(HistoryExplorerError, ValueError):
    """A stored state snapshot could not be decompressed or parsed."""
