"""Exception types shared across the ledger packages."""


class LedgerError(Exception):
    """Base class for all ledger errors."""


class ConfigurationError(LedgerError, ValueError):
    """A recurring definition is malformed (bad interval, missing fields)."""


class ExtractionError(LedgerError, RuntimeError):
    """The extraction collaborator failed or returned nothing usable."""


class UnsupportedFileError(LedgerError, ValueError):
    """A statement file type the import pipeline cannot handle."""


class NotFoundError(LedgerError, LookupError):
    """An entity referenced by id does not exist."""


class ScheduleConflictError(LedgerError):
    """A recurring schedule was advanced by someone else between read and write."""
