"""Configuration management for the PWA to Azure DevOps bridge."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from pwa_devops_sync.auth import (
    BearerTokenAuth,
    ChainedCredential,
    EnvironmentCredential,
    PersonalAccessTokenAuth,
    StoredCredential,
)
from pwa_devops_sync.errors import ConfigurationError
from pwa_devops_sync.sync.gateway import LookupFailurePolicy
from pwa_devops_sync.utils.storage import StorageManager

DEVOPS_PAT_ENV = "AZURE_DEVOPS_PAT"
PWA_TOKEN_ENV = "PWA_ACCESS_TOKEN"


class DevOpsSettings(BaseModel):
    """Azure DevOps connection settings."""

    organization_url: str
    project: str
    parent_type: str = "Epic"
    child_type: str = "Task"
    lookup_failure: LookupFailurePolicy = LookupFailurePolicy.CREATE

    @field_validator("organization_url", "project")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()


class PwaSettings(BaseModel):
    """Project Online connection settings."""

    url: str

    @field_validator("url")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()


class Config:
    """Manages connection settings and credentials."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize configuration.

        Args:
            config_dir: Directory for storing configuration.
        """
        self.storage = StorageManager(config_dir)
        self._settings = self.storage.load_settings()

    def get_settings(self) -> dict[str, Any]:
        """Get raw settings, keyed by section."""
        return self._settings

    def update_section(self, section: str, values: dict[str, Any]) -> None:
        """Merge values into a settings section and save.

        Args:
            section: "devops" or "pwa".
            values: Settings to merge.
        """
        self._settings.setdefault(section, {}).update(values)
        self.storage.save_settings(self._settings)

    def _section(self, section: str, model: type[BaseModel]) -> Any:
        values = self._settings.get(section)
        if not values:
            raise ConfigurationError(f"'{section}' settings are not configured")
        try:
            return model.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid '{section}' settings: {e}") from e

    def devops_settings(self) -> DevOpsSettings:
        """Validated Azure DevOps settings.

        Raises:
            ConfigurationError: If missing or invalid.
        """
        return self._section("devops", DevOpsSettings)

    def pwa_settings(self) -> PwaSettings:
        """Validated Project Online settings.

        Raises:
            ConfigurationError: If missing or invalid.
        """
        return self._section("pwa", PwaSettings)

    def is_configured(self, section: str) -> bool:
        """Check whether a section has valid settings."""
        try:
            self._section(section, DevOpsSettings if section == "devops" else PwaSettings)
        except ConfigurationError:
            return False
        return True

    def devops_auth(self) -> PersonalAccessTokenAuth:
        """Auth flow for Azure DevOps; the environment wins over the token file."""
        return PersonalAccessTokenAuth(
            ChainedCredential(
                EnvironmentCredential(DEVOPS_PAT_ENV),
                StoredCredential(self.storage, "devops"),
            )
        )

    def pwa_auth(self) -> BearerTokenAuth:
        """Auth flow for Project Online; the environment wins over the token file."""
        return BearerTokenAuth(
            ChainedCredential(
                EnvironmentCredential(PWA_TOKEN_ENV),
                StoredCredential(self.storage, "pwa"),
            )
        )
