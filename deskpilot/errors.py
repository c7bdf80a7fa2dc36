"""
Error taxonomy for deskpilot.

Validation errors are raised before any mutation begins. Filesystem errors
are raised per action; the organize/dedupe/rollback loops record them on
the failing action and carry on with the rest of the batch.
"""


class DeskPilotError(Exception):
    """Base class for all deskpilot errors."""


# Validation (fatal, raised before planning)


class InvalidInputError(DeskPilotError, ValueError):
    """An operation argument is malformed."""


class DirectoryNotFoundError(InvalidInputError):
    """Target path is missing or is not a directory."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Directory does not exist: {path}")


class InvalidStrategyError(InvalidInputError):
    """Keep strategy is not one of the supported policies."""

    def __init__(self, strategy, valid):
        self.strategy = strategy
        super().__init__(
            f"Invalid strategy: {strategy}. Valid strategies: {', '.join(valid)}"
        )


# Per-action filesystem failures


class FilesystemOperationError(DeskPilotError, OSError):
    """A move/delete/restore step failed."""


class SourceMissingError(FilesystemOperationError):
    """Source of a move does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Source file does not exist: {path}")


class FileNotFoundInTreeError(FilesystemOperationError):
    """Path to delete (or touched by the OS call) does not exist."""


class CollisionUnresolvedError(FilesystemOperationError):
    """No free name could be found for a destination."""

    def __init__(self, path, attempts):
        self.path = path
        self.attempts = attempts
        super().__init__(
            f"Could not find a free name for {path} after {attempts} attempts"
        )


class DestinationExistsError(FilesystemOperationError):
    """Destination is occupied and collision resolution was disabled."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Destination already exists: {path}")


class PermissionDeniedError(FilesystemOperationError):
    """The OS refused access."""


class BusyError(FilesystemOperationError):
    """File is locked or busy."""


class UnknownFilesystemError(FilesystemOperationError):
    """Any other OS failure."""


# Ledger / rollback


class LedgerError(DeskPilotError):
    """Illegal transaction state change."""


class TransactionNotFoundError(DeskPilotError, LookupError):
    """No transaction with the given id."""

    def __init__(self, transaction_id):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")


class AlreadyRolledBackError(DeskPilotError):
    """Transaction was rolled back before."""

    def __init__(self, transaction_id):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction has already been rolled back: {transaction_id}")


class CannotRollbackDryRunError(DeskPilotError):
    """Dry-run transactions never touched the filesystem."""

    def __init__(self, transaction_id):
        self.transaction_id = transaction_id
        super().__init__(f"Cannot rollback a dry-run transaction: {transaction_id}")


class NotRollbackableError(DeskPilotError):
    """Transaction is not in a state or of a type that can be reversed."""

    def __init__(self, transaction_id, reason):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} cannot be rolled back: {reason}")


# Reading


class ContentHashError(DeskPilotError, OSError):
    """File could not be opened or read while hashing."""

    def __init__(self, path, reason):
        self.path = path
        super().__init__(f"Cannot hash {path}: {reason}")
