"""Error types raised by the Observatory services"""

from typing import Optional


class ObservatoryError(Exception):
    """Base class for all Observatory errors"""


class AuthError(ObservatoryError):
    """Failure to obtain a GitHub credential.

    ``transient`` tells the caller whether retrying later may succeed.
    """

    transient = True


class KeySigningError(AuthError):
    """The app private key could not sign a JWT. This is a configuration error."""

    transient = False


class TokenExchangeError(AuthError):
    """Exchanging the app JWT for an installation token failed"""

    transient = True


class NoCredentialsForRepo(ObservatoryError):
    def __init__(self, full_repo_name: str):
        super().__init__(f"No GitHub installation found for {full_repo_name}")
        self.full_repo_name = full_repo_name


class MalformedPath(ObservatoryError):
    def __init__(self, path: str):
        super().__init__(f"Cannot derive an article from path {path!r}")
        self.path = path


class RemoteError(ObservatoryError):
    """Non-2xx response or transport failure from the GitHub API"""

    def __init__(
        self,
        message: str,
        url: str,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class DiffParseError(ObservatoryError):
    pass


class PreconditionViolation(ObservatoryError):
    """A caller broke a documented precondition. Indicates a programming error."""
