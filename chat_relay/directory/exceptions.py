"""Failure taxonomy of the credential directory."""


class DirectoryError(Exception):
    """Base class for credential directory failures."""


class DuplicateUsername(DirectoryError):
    def __init__(self, username: str) -> None:
        super().__init__(f"username already exists: {username}")
        self.username = username


class InvalidCredential(DirectoryError):
    """Raised for an unknown username and for a wrong hash alike."""

    def __init__(self) -> None:
        super().__init__("invalid username or credential")


class DirectoryUnavailable(DirectoryError):
    """The backing store failed while reading or writing."""
