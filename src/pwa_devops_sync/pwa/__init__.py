"""Project Online integration."""

from pwa_devops_sync.pwa.client import ProjectOnlineClient
from pwa_devops_sync.pwa.models import (
    PwaProject,
    PwaProjectSummary,
    PwaTask,
    SyncMode,
)

__all__ = [
    "ProjectOnlineClient",
    "PwaProject",
    "PwaProjectSummary",
    "PwaTask",
    "SyncMode",
]
