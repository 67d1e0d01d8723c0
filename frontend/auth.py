"""Explicit authentication context for the dashboard.

One AuthContext lives per browser session (held in st.session_state) and is
passed to every collaborator that needs the PAT. Login fills it, logout
empties it.
"""

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from frontend.github_client import GitHubClient, GitHubError, GitHubUser

logger = structlog.get_logger(__name__)


class AuthError(Exception):
    """The personal access token was empty or rejected by the provider."""
    pass


@dataclass
class AuthContext:
    """PAT plus the authenticated user's profile."""
    access_token: str | None = None
    user: GitHubUser | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def login(self, token: str, user: GitHubUser | None = None) -> None:
        self.access_token = token
        self.user = user
        logger.info("auth.login", user=user.login if user else None)

    def logout(self) -> None:
        logger.info("auth.logout", user=self.user.login if self.user else None)
        self.access_token = None
        self.user = None

    def bearer_headers(self) -> dict[str, str]:
        """Authorization header for the review gateway, empty when logged out."""
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    def github(self) -> GitHubClient:
        """A provider client bound to this context's token."""
        if not self.access_token:
            raise AuthError("Not authenticated.")
        return GitHubClient(self.access_token)


def login_with_token(
    token: str,
    auth: AuthContext,
    client_factory: Callable[[str], GitHubClient] = GitHubClient,
) -> AuthContext:
    """Validate a PAT against the provider and store it in `auth`.

    Args:
        token: Personal access token as typed by the user.
        auth: The session's context; only modified on success.
        client_factory: Builds a provider client for the token.

    Returns:
        The same context, now authenticated.

    Raises:
        AuthError: If the token is blank or the provider rejects it.
    """
    token = token.strip()
    if not token:
        raise AuthError("Please enter a Personal Access Token")

    try:
        user = client_factory(token).get_authenticated_user()
    except GitHubError as e:
        logger.warning("auth.token_rejected", status=e.status_code)
        detail = f": {e.status_code}" if e.status_code else ""
        raise AuthError(f"Invalid token{detail}") from e

    auth.login(token, user)
    return auth
