"""
HTTP-facing exceptions
"""

from fastapi import HTTPException, status


class ServiceUnavailableError(HTTPException):
    """The character listing could not be loaded"""

    def __init__(self, detail: str = "Failed to load characters."):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class InternalServerError(HTTPException):
    """Unexpected failure while building a response"""

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
        )
