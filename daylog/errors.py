"""Error taxonomy shared by the storage engine and the HTTP layer."""


class DaylogError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, error: str, message: str | None = None):
        super().__init__(error)
        self.error = error
        self.message = message

    def to_dict(self) -> dict:
        payload = {"success": False, "error": self.error}
        if self.message:
            payload["message"] = self.message
        return payload


class ValidationError(DaylogError):
    """Raised when request input is missing or malformed."""

    status_code = 400


class NotFoundError(DaylogError):
    """Raised when a partition (or any partition at all) does not exist."""

    status_code = 404
