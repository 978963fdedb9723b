"""Base exception classes for the Userbase domain layer."""


class UserbaseError(Exception):
    """Base exception for all domain errors.

    All domain-specific exceptions MUST inherit from this class so the API
    layer can translate them into a single JSON error envelope.

    Attributes:
        message: Human-readable error description, safe to return to clients.
        HTTP_STATUS: Status code the API layer responds with.
        ERROR_CODE: Stable machine-readable code.
    """

    HTTP_STATUS = 500
    ERROR_CODE = "USERBASE_ERROR"

    def __init__(self, message: str = "") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to the JSON error envelope.

        Returns:
            Dictionary with the client-facing error message and code.
        """
        return {"error": self.message, "code": self.ERROR_CODE}
