"""Credential providers and httpx auth flows.

Transport clients never read credentials themselves. A provider is resolved
on every request by the ``httpx.Auth`` instance handed to the client at
construction, so rotated tokens are picked up without rebuilding clients.
"""

import base64
import logging
import os
from collections.abc import Generator
from typing import Protocol

import httpx

from pwa_devops_sync.errors import AuthenticationFailed
from pwa_devops_sync.utils import StorageManager

logger = logging.getLogger(__name__)


class CredentialProvider(Protocol):
    """Anything that can produce a secret on demand."""

    def resolve(self) -> str:
        """Return the current secret or raise AuthenticationFailed."""
        ...


class StaticCredential:
    """A fixed secret supplied by the caller."""

    def __init__(self, secret: str) -> None:
        """Initialize with the secret to hand out.

        Args:
            secret: Token or PAT; surrounding whitespace is ignored.
        """
        self.secret = secret

    def resolve(self) -> str:
        """Return the secret.

        Raises:
            AuthenticationFailed: If the secret is empty.
        """
        resolved = (self.secret or "").strip()
        if not resolved:
            raise AuthenticationFailed("Static credential is empty")
        return resolved


class EnvironmentCredential:
    """A secret read from an environment variable."""

    def __init__(self, variable: str) -> None:
        """Initialize environment credential.

        Args:
            variable: Name of the environment variable to read.
        """
        self.variable = variable

    def resolve(self) -> str:
        """Read the variable at call time.

        Raises:
            AuthenticationFailed: If the variable is unset or blank.
        """
        resolved = (os.getenv(self.variable) or "").strip()
        if not resolved:
            raise AuthenticationFailed(f"{self.variable} is not set or empty")
        return resolved


class StoredCredential:
    """A secret kept in the token file of the config directory."""

    def __init__(self, storage: StorageManager, service: str) -> None:
        """Initialize stored credential.

        Args:
            storage: Storage manager owning the token file.
            service: Token key ("devops" or "pwa").
        """
        self.storage = storage
        self.service = service

    def resolve(self) -> str:
        """Read the token file at call time.

        Raises:
            AuthenticationFailed: If no token is stored for the service.
        """
        resolved = (self.storage.get_token(self.service) or "").strip()
        if not resolved:
            raise AuthenticationFailed(f"No stored credential for '{self.service}'")
        return resolved


class ChainedCredential:
    """First provider that resolves wins."""

    def __init__(self, *providers: CredentialProvider) -> None:
        """Initialize chain.

        Args:
            *providers: Providers to try, in order.
        """
        self.providers = providers

    def resolve(self) -> str:
        """Return the secret of the first provider that has one.

        Raises:
            AuthenticationFailed: If every provider fails; the message
                joins their reasons.
        """
        failures = []
        for provider in self.providers:
            try:
                return provider.resolve()
            except AuthenticationFailed as e:
                failures.append(e.message)
        raise AuthenticationFailed("; ".join(failures) or "No credential providers configured")


class PersonalAccessTokenAuth(httpx.Auth):
    """Azure DevOps PAT sent as HTTP Basic with an empty user name."""

    def __init__(self, provider: CredentialProvider) -> None:
        """Initialize auth flow.

        Args:
            provider: Source of the secret, resolved on every request.
        """
        self.provider = provider

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        """Attach `Basic base64(":<pat>")` to the request."""
        pat = self.provider.resolve()
        encoded = base64.b64encode(f":{pat}".encode("ascii")).decode("ascii")
        request.headers["Authorization"] = f"Basic {encoded}"
        yield request


class BearerTokenAuth(httpx.Auth):
    """OAuth bearer token, used for Project Online."""

    def __init__(self, provider: CredentialProvider) -> None:
        """Initialize auth flow.

        Args:
            provider: Source of the secret, resolved on every request.
        """
        self.provider = provider

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        """Attach the bearer token to the request."""
        request.headers["Authorization"] = f"Bearer {self.provider.resolve()}"
        yield request
