"""Domain exceptions shared by the sandbox managers.

Managers raise these (or plain ``LookupError`` / ``ValueError`` subclasses),
never HTTP exceptions.  ``http_error`` performs the translation for routers.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class InvalidInputError(ValueError):
    """Rejected repository / branch / SHA / model name."""


class RepositoryNotFoundError(LookupError):
    """No registry record for the requested repository."""


class WorkspaceMissingError(LookupError):
    """The repository has not been cloned into the workspace root."""


class CommandError(RuntimeError):
    """An external tool (git, package manager, agent CLI) failed.

    Carries the captured output so it can be shown to the operator.
    """

    def __init__(
        self,
        message: str,
        *,
        argv: list[str] | None = None,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.argv = argv or []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @property
    def output(self) -> str:
        """Combined diagnostic output, stderr first."""
        return "\n".join(part for part in (self.stderr.strip(), self.stdout.strip()) if part)


class CommandNotFoundError(CommandError):
    """The executable is not installed or not on PATH."""


class CommandTimeoutError(CommandError):
    """The command exceeded its time bound and was killed."""


class CommandOutputLimitError(CommandError):
    """The command produced more output than allowed and was killed."""


class MissingTokenError(PermissionError):
    """No source-hosting access token was supplied or configured."""


class PullRequestError(RuntimeError):
    """The hosting API refused to open a pull request.

    The branch has already been pushed by then and is kept on the error.
    """

    def __init__(self, message: str, *, branch: str) -> None:
        super().__init__(message)
        self.branch = branch


class HostingApiError(RuntimeError):
    """A read request to the source hosting API failed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NoAvailablePortError(RuntimeError):
    """Every port in the probe range is taken."""


DOMAIN_ERRORS: tuple[type[Exception], ...] = (
    InvalidInputError,
    LookupError,
    CommandError,
    MissingTokenError,
    PullRequestError,
    HostingApiError,
    NoAvailablePortError,
)
"""Exceptions routers translate with ``http_error``; anything else is a 500."""


def http_error(exc: Exception) -> HTTPException:
    """Translate a domain exception into an ``HTTPException``."""
    if isinstance(exc, CommandTimeoutError):
        return HTTPException(
            status.HTTP_504_GATEWAY_TIMEOUT,
            detail={"error": str(exc), "output": exc.output},
        )
    if isinstance(exc, CommandError):
        return HTTPException(
            status.HTTP_502_BAD_GATEWAY,
            detail={"error": str(exc), "output": exc.output},
        )
    if isinstance(exc, PullRequestError):
        return HTTPException(
            status.HTTP_502_BAD_GATEWAY,
            detail={"error": str(exc), "branch": exc.branch},
        )
    if isinstance(exc, HostingApiError):
        return HTTPException(
            status.HTTP_502_BAD_GATEWAY,
            detail={"error": str(exc), "status_code": exc.status_code},
        )
    if isinstance(exc, MissingTokenError):
        return HTTPException(status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    if isinstance(exc, NoAvailablePortError):
        return HTTPException(status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, LookupError):
        return HTTPException(status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
