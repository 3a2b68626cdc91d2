"""Identity-provider group lookup through Microsoft Graph.

Acquires an app-only token with the OAuth2 client-credentials grant, then
asks Graph for the group IDs of the current user principal with
``getMemberGroups``. Every request is bounded by a timeout and a small
retry budget; any failure raises AuthorizationError.
"""

import logging
import os
import subprocess
from typing import Any

import requests

from egnytectl.core.config import AuthorizationSection
from egnytectl.directory.base import AuthorizationError, GroupDirectory
from egnytectl.utils.http import create_session
from egnytectl.utils.shell import run_command

logger = logging.getLogger(__name__)

TOKEN_URL = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
MEMBER_GROUPS_URL = "https://graph.microsoft.com/v1.0/users/{principal}/getMemberGroups"


def resolve_user_principal() -> str:
    """Resolve the signed-in user's principal name.

    Uses ``whoami /upn`` on Windows, which works for Entra ID joined and
    hybrid joined devices.

    Raises:
        AuthorizationError: If the principal cannot be determined.
    """
    if os.name != "nt":
        raise AuthorizationError(
            "Cannot resolve the user principal on this platform; set authorization.user_principal"
        )
    try:
        result = run_command(["whoami", "/upn"], timeout=30.0)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise AuthorizationError(f"Could not resolve user principal: {e}") from e
    principal = result.stdout.strip()
    if not result.success or "@" not in principal:
        raise AuthorizationError(f"Could not resolve user principal: {result.output}")
    return principal


class GraphGroupDirectory(GroupDirectory):
    """Group membership from Microsoft Graph.

    Attributes:
        settings: Authorization section of the configuration.
    """

    def __init__(
        self,
        settings: AuthorizationSection,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the Graph directory.

        Args:
            settings: Tenant, application and principal settings.
            session: HTTP session. If None, a retrying session is created.
        """
        self.settings = settings
        self._session = session or create_session(retries=settings.retries)

    @property
    def name(self) -> str:
        return "Microsoft Graph"

    def _post(self, url: str, **kwargs: Any) -> dict[str, Any]:
        """POST and decode a JSON object, mapping every failure to AuthorizationError."""
        try:
            response = self._session.post(url, timeout=self.settings.timeout, **kwargs)
        except requests.RequestException as e:
            raise AuthorizationError(f"Request to {url} failed: {e}") from e

        if response.status_code >= 400:
            # Body may carry error_description; never log request data (secret)
            raise AuthorizationError(
                f"Request to {url} failed with HTTP {response.status_code}: {response.text[:300]}"
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise AuthorizationError(f"Response from {url} is not JSON") from e
        if not isinstance(payload, dict):
            raise AuthorizationError(f"Response from {url} is not a JSON object")
        return payload

    def acquire_token(self) -> str:
        """Acquire an app-only access token.

        Raises:
            AuthorizationError: If the secret is missing or the token request fails.
        """
        secret = self.settings.client_secret()
        if not secret:
            raise AuthorizationError(
                f"Client secret not set; export {self.settings.client_secret_env}"
            )

        url = TOKEN_URL.format(tenant_id=self.settings.tenant_id)
        payload = self._post(
            url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.settings.client_id,
                "client_secret": secret,
                "scope": GRAPH_SCOPE,
            },
        )
        token = payload.get("access_token")
        if not isinstance(token, str) or not token:
            raise AuthorizationError("Token response did not contain an access token")
        logger.debug("Acquired Graph access token")
        return token

    def list_groups(self) -> frozenset[str]:
        """Return the object IDs of all groups the user is a member of.

        Raises:
            AuthorizationError: If any step fails.
        """
        principal = self.settings.user_principal or resolve_user_principal()
        token = self.acquire_token()

        payload = self._post(
            MEMBER_GROUPS_URL.format(principal=principal),
            json={"securityEnabledOnly": False},
            headers={"Authorization": f"Bearer {token}"},
        )
        values = payload.get("value")
        if not isinstance(values, list):
            raise AuthorizationError("Group response did not contain a 'value' list")

        groups = frozenset(str(value) for value in values if value)
        logger.info("%s is a member of %d group(s) in Graph", principal, len(groups))
        return groups
