"""Secret Manager access for configuration placeholders.

Config values such as the push gateway access token may be written as
``${secret:name}`` or ``${secret:name:version}``; they are read from
Google Cloud Secret Manager. Plain ``${ENV_VAR}`` placeholders resolve
from the environment.
"""

import logging
import os
import re
from dataclasses import dataclass

from google.cloud import secretmanager


logger = logging.getLogger(__name__)


_SECRET_PATTERN = re.compile(r"^\$\{secret:([^:}]+)(?::([^}]+))?\}$")
_ENV_PATTERN = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")


@dataclass(frozen=True)
class SecretRef:
    """A secret named in a config placeholder."""
    name: str
    version: str = "latest"

    def resource_path(self, project_id: str) -> str:
        return f"projects/{project_id}/secrets/{self.name}/versions/{self.version}"


def parse_secret_ref(value: str) -> SecretRef | None:
    """Parse a ``${secret:...}`` placeholder, None for anything else."""
    match = _SECRET_PATTERN.match(value)
    if match is None:
        return None
    name, version = match.groups()
    return SecretRef(name=name, version=version or "latest")


def expand_env(value: str) -> str:
    """Expand a ``${ENV_VAR}`` placeholder from the environment.

    Anything that is not such a placeholder, or names an unset variable,
    is returned as given.
    """
    match = _ENV_PATTERN.match(value)
    if match is None:
        return value

    env_value = os.environ.get(match.group(1))
    if env_value:
        return env_value

    logger.warning("Environment variable %s not set", match.group(1))
    return value


class SecretManagerClient:
    """Reads push credentials and other secrets for one GCP project.

    The underlying API client is created on first use, so constructing
    this class never touches the network.
    """

    def __init__(self, project_id: str | None = None) -> None:
        self.project_id = project_id
        self._api: secretmanager.SecretManagerServiceClient | None = None

    @property
    def api(self) -> secretmanager.SecretManagerServiceClient:
        if self._api is None:
            self._api = secretmanager.SecretManagerServiceClient()
        return self._api

    def read(self, ref: SecretRef) -> str | None:
        """Read a secret's payload.

        Returns:
            The decoded payload, or None if no project is configured or
            the read fails
        """
        if not self.project_id:
            logger.error("Cannot read secret %s: no GCP project configured", ref.name)
            return None

        try:
            response = self.api.access_secret_version(
                request={"name": ref.resource_path(self.project_id)}
            )
        except Exception as e:
            logger.error("Secret %s (version %s) unavailable: %s", ref.name, ref.version, str(e))
            return None

        logger.info("Read secret %s", ref.name)
        return response.payload.data.decode("UTF-8")

    def get_secret(self, name: str, version: str = "latest") -> str | None:
        return self.read(SecretRef(name=name, version=version))

    def resolve(self, value: str) -> str:
        """Expand a placeholder; anything unresolvable is returned as given."""
        ref = parse_secret_ref(value)
        if ref is None:
            return expand_env(value)

        secret = self.read(ref)
        return value if secret is None else secret
