# errors.py
class InvalidRangeFormat(ValueError):
    """Raised when an address or address range cannot be parsed."""


class AddressOutOfRange(InvalidRangeFormat):
    """Raised when an octet of a dotted-quad address exceeds 255."""


class AdoptionError(Exception):
    """Base class for adoption session failures.

    Carries whatever transcript was captured before the failure so the caller
    never loses partial diagnostic output.
    """

    def __init__(self, message: str, transcript: str = ""):
        super().__init__(message)
        self.transcript = transcript

    def full_transcript(self) -> str:
        """Returns the captured transcript followed by the error message."""
        return f"{self.transcript}\n{self}"


class ConnectionFailed(AdoptionError):
    """The management port could not be reached."""


class AuthenticationFailed(AdoptionError):
    """The SSH handshake or the password authentication failed."""


class ProtocolError(AdoptionError):
    """The session channel failed after authentication."""
