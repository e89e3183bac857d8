"""Error response builders for MCP tool handlers.

Structured error responses carry a corrective action so an agent can
recover without human intervention.
"""

import mcp.types as types

from ...core.exceptions import (
    GitHubAuthenticationError,
    GitHubError,
    GitHubNetworkError,
    GitHubNotFoundError,
    GitHubPermissionError,
)


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_configured, busy, auth_error,
            not_found, network_error, validation_error, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("busy", "Sync already in progress", "Wait and retry.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def translate_github_error(error: GitHubError) -> types.CallToolResult:
    """Translate a GitHub client error into a structured error response."""
    match error:
        case GitHubAuthenticationError():
            return build_error_response(
                "auth_error",
                str(error),
                "Check GITHUB_TOKEN is valid and not expired.",
            )
        case GitHubPermissionError():
            return build_error_response(
                "permission_denied",
                str(error),
                "Ensure the token has the 'repo' scope for this repository.",
            )
        case GitHubNotFoundError():
            return build_error_response(
                "not_found",
                str(error),
                "Check GITHUB_USERNAME and VAULT_SYNC_REPOSITORY.",
            )
        case GitHubNetworkError():
            return build_error_response(
                "network_error",
                str(error),
                "Check network connectivity to the GitHub API and retry.",
            )
        case _:
            return build_error_response(
                "server_error",
                str(error),
                "Retry later; GitHub may be rate limiting or unavailable.",
            )
