"""
Access token providers for Microsoft Graph.

Acquiring tokens (device code flow, refresh) happens outside this
package; providers only hand out a token that already exists.
"""

import logging
import os
from typing import Iterable, Optional

from ..core.exceptions import AuthenticationError
from ..utils.date import parse_timestamp, utc_now
from ..utils.io import safe_read_json


TOKEN_ENV_VAR = "MSTODO_ACCESS_TOKEN"


class EnvTokenProvider:
    """Reads the bearer token from an environment variable."""

    def __init__(self, env_var: str = TOKEN_ENV_VAR):
        self.env_var = env_var

    def get_token(self) -> Optional[str]:
        value = os.environ.get(self.env_var, "").strip()
        return value or None


class FileTokenProvider:
    """Reads ``{"access_token": ..., "expires_on": ...}`` from a JSON file."""

    def __init__(self, token_path: str, logger: Optional[logging.Logger] = None):
        self.token_path = token_path
        self.logger = logger or logging.getLogger(__name__)

    def get_token(self) -> Optional[str]:
        data = safe_read_json(self.token_path, default={})
        if not isinstance(data, dict):
            return None

        token = data.get("access_token") or data.get("accessToken")
        if not token:
            return None

        expires_on = parse_timestamp(data.get("expires_on") or data.get("expiresOn"))
        if expires_on is not None and expires_on <= utc_now():
            self.logger.warning("Access token in %s expired at %s", self.token_path, expires_on)
            return None
        return token


class ChainTokenProvider:
    """Returns the first token any of its providers can supply."""

    def __init__(self, providers: Iterable):
        self.providers = list(providers)

    def get_token(self) -> str:
        for provider in self.providers:
            token = provider.get_token()
            if token:
                return token
        raise AuthenticationError(
            f"No access token found; set {TOKEN_ENV_VAR} or sign in again to refresh the token file"
        )


def default_token_provider(token_path: Optional[str] = None) -> ChainTokenProvider:
    """Environment variable first, then the token file."""
    providers = [EnvTokenProvider()]
    if token_path:
        providers.append(FileTokenProvider(token_path))
    return ChainTokenProvider(providers)
