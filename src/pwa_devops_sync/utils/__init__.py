"""Utility modules for the PWA to Azure DevOps bridge."""

from pwa_devops_sync.utils.logging import get_logger, setup_logging
from pwa_devops_sync.utils.storage import StorageManager

__all__ = ["get_logger", "setup_logging", "StorageManager"]
