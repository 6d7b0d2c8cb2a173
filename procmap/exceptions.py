"""
procmap/exceptions.py
---------------------
Error taxonomy for the mapping layer.
Driver-level errors are translated into these at the session boundary,
so callers never need to import psycopg2 to handle a failure.
"""


class ProcMapError(Exception):
    """Base class for every error raised by procmap."""


class MetadataError(ProcMapError):
    """An entity type or relationship is declared incorrectly."""


class MappingError(ProcMapError):
    """A stored value cannot be coerced to the declared field kind."""


class ValidationError(ProcMapError):
    """
    An entity graph failed validation.

    Attributes:
        errors: Ordered list of human-readable messages.
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed.")


class StorageConnectionError(ProcMapError):
    """A storage session could not be opened for a connection name."""


class ProcedureError(ProcMapError):
    """
    A named stored procedure failed on the storage side.

    Attributes:
        procedure: Name of the procedure that failed.
    """

    def __init__(self, procedure: str, message: str):
        self.procedure = procedure
        super().__init__(f"{procedure}: {message}")


class CycleError(ProcMapError):
    """A recursive save or load revisited a node or went too deep."""
