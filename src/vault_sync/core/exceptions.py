"""Exceptions raised by the GitHub client."""


class GitHubError(Exception):
    """Base class for every error raised while talking to GitHub."""


class GitHubNetworkError(GitHubError):
    """The request never produced an HTTP response (DNS, TLS, timeout...)."""


class GitHubAPIError(GitHubError):
    """GitHub answered with a status code of 400 or above.

    Attributes:
        status_code: HTTP status of the response.
        message: The ``message`` field of the JSON error body, or
            ``"HTTP {status}"`` when the body carries none.
    """

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"GitHub API Error: {message}")


class GitHubAuthenticationError(GitHubAPIError):
    """401: the token is missing, expired or revoked."""


class GitHubPermissionError(GitHubAPIError):
    """403: the token lacks a scope, or the rate limit was hit."""


class GitHubNotFoundError(GitHubAPIError):
    """404: repository, ref or path does not exist (or is hidden)."""


_STATUS_ERRORS: dict[int, type[GitHubAPIError]] = {
    401: GitHubAuthenticationError,
    403: GitHubPermissionError,
    404: GitHubNotFoundError,
}


def error_for_status(status_code: int, message: str) -> GitHubAPIError:
    """Build the most specific ``GitHubAPIError`` for *status_code*."""
    cls = _STATUS_ERRORS.get(status_code, GitHubAPIError)
    return cls(status_code, message)
