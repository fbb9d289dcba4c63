"""Export failures, each carrying the HTTP status the route answers with."""


class BookingExportError(Exception):
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidExportRequest(BookingExportError):
    """Bad format, cohort or date parameter. Raised before any data access."""
    status_code = 400


class NoBookingsFound(BookingExportError):
    """The booking query succeeded but matched nothing."""
    status_code = 404

    def __init__(self, message: str = "No bookings found"):
        super().__init__(message)


class DataStoreError(BookingExportError):
    """The underlying query failed; message is passed through to the caller."""
    status_code = 500
