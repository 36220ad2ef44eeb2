"""
Domain errors for scheduling and batch jobs.
Routers translate these into HTTP responses; services never raise HTTPException.
"""


class BookingError(Exception):
    """Base class for all booking backend errors"""

    pass


class AuthorizationError(BookingError):
    """Shared secret or API key mismatch"""

    pass


class ValidationError(BookingError):
    """Unknown job type or malformed window/interval parameters"""

    pass


class StorageError(BookingError):
    """The backing store failed while loading a candidate set"""

    pass


class PerRecordError(BookingError):
    """A single record's action failed inside a batch job"""

    def __init__(self, record_id: str, message: str):
        super().__init__(f"{record_id}: {message}")
        self.record_id = record_id
        self.message = message


class AppointmentNotFoundError(BookingError):
    pass


class CustomerNotFoundError(BookingError):
    pass


class AppointmentConflictError(BookingError):
    """Candidate interval overlaps an active appointment of the same artist"""

    def __init__(self, artist_id: str, conflicting_ids: list[str]):
        super().__init__(
            f"Artist {artist_id} already has an appointment in that time range"
        )
        self.artist_id = artist_id
        self.conflicting_ids = conflicting_ids


class CustomerExistsError(BookingError):
    """A customer with that email is already on file"""

    pass
