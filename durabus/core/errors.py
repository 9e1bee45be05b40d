"""Exceptions raised by durabus datastores."""


class DatastoreError(Exception):
    """Base class for failures raised by the shipped datastores."""


class RecordNotFoundError(DatastoreError):
    """Raised when updating a record id the datastore does not know.

    Attributes:
        record_id: The id that could not be found.
    """

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"No event record with id {record_id!r}")


class RecordSerializationError(DatastoreError):
    """Raised when a record cannot be encoded for storage or decoded from it."""

    def __init__(self, message: str, original: Exception | None = None):
        self.original = original
        super().__init__(message)
