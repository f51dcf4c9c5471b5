from fastapi import status


class ErrorCode:
    INVALID_PAYLOAD = "InvalidPayload"
    NOT_FOUND       = "NotFound"
    NO_REVIEWS      = "NoReviews"


class RideServiceError(Exception):
    """
    Base class for failures returned by the ride service.
    Carries the HTTP status and a machine-readable code for the error body.
    """
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = ""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidPayload(RideServiceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = ErrorCode.INVALID_PAYLOAD

    def __init__(self, message: str = "Invalid input payload", errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []


class NotFound(RideServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.NOT_FOUND

    def __init__(self, resource: str, record_id: str):
        super().__init__(f"{resource} with id={record_id} not found")


class NoReviews(RideServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.NO_REVIEWS

    def __init__(self, ride_id: str):
        super().__init__(f"No reviews found for ride with id={ride_id}")
