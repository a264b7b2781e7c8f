"""Settings, state, and token storage for the PWA to Azure DevOps bridge."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_DIR = Path.home() / ".pwa-devops-sync"


class StorageManager:
    """Manages settings, sync state, and token storage."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize storage manager.

        Args:
            config_dir: Directory to store configuration. Defaults to ~/.pwa-devops-sync/
        """
        self.config_dir = config_dir or DEFAULT_CONFIG_DIR
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.settings_file = self.config_dir / "settings.yaml"
        self.state_file = self.config_dir / "state.json"
        self.tokens_file = self.config_dir / "tokens.json"

    def load_settings(self) -> dict[str, Any]:
        """Load connection settings.

        Returns:
            Settings dictionary keyed by section ("devops", "pwa").
        """
        if self.settings_file.exists():
            with open(self.settings_file) as f:
                return yaml.safe_load(f) or {}
        return {}

    def save_settings(self, settings: dict[str, Any]) -> None:
        """Save connection settings.

        Args:
            settings: Settings dictionary to save.
        """
        with open(self.settings_file, "w") as f:
            yaml.dump(settings, f, default_flow_style=False, sort_keys=False)

    def load_state(self) -> dict[str, Any]:
        """Load synchronization state.

        Returns:
            State dictionary with last sync timestamp and result summary.
        """
        if self.state_file.exists():
            with open(self.state_file) as f:
                return json.load(f)
        return {}

    def save_state(self, state: dict[str, Any]) -> None:
        """Save synchronization state."""
        with open(self.state_file, "w") as f:
            json.dump(state, f, indent=2)

    def get_last_sync(self) -> tuple[datetime | None, dict[str, Any] | None]:
        """Get the time and result summary of the last sync run.

        Returns:
            Tuple of (timestamp, result dict); both None if never synced.
        """
        state = self.load_state()
        if "last_sync_date" not in state:
            return None, None
        return datetime.fromisoformat(state["last_sync_date"]), state.get("last_result")

    def record_sync(self, when: datetime, result: dict[str, Any]) -> None:
        """Record a finished sync run.

        Args:
            when: The synchronization datetime.
            result: Serialized sync result.
        """
        state = self.load_state()
        state["last_sync_date"] = when.isoformat()
        state["last_result"] = result
        self.save_state(state)

    def load_tokens(self) -> dict[str, str]:
        """Load stored credentials.

        Returns:
            Dictionary of service names to tokens.
        """
        if self.tokens_file.exists():
            with open(self.tokens_file) as f:
                return json.load(f)
        return {}

    def save_tokens(self, tokens: dict[str, str]) -> None:
        """Save credentials, readable by the owner only."""
        self.tokens_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.tokens_file, "w") as f:
            json.dump(tokens, f)
        self.tokens_file.chmod(0o600)

    def get_token(self, service: str) -> str | None:
        """Get stored token for a service.

        Args:
            service: Service name ("devops" or "pwa").

        Returns:
            Token if available, None otherwise.
        """
        return self.load_tokens().get(service)

    def set_token(self, service: str, token: str) -> None:
        """Save token for a service."""
        tokens = self.load_tokens()
        tokens[service] = token
        self.save_tokens(tokens)
