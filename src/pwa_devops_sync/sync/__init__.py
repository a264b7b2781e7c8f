"""Synchronization engine for Project Online projects."""

from pwa_devops_sync.sync.engine import SyncEngine, SyncResult
from pwa_devops_sync.sync.gateway import LookupFailurePolicy, WorkItemGateway
from pwa_devops_sync.sync.service import SyncService

__all__ = [
    "LookupFailurePolicy",
    "SyncEngine",
    "SyncResult",
    "SyncService",
    "WorkItemGateway",
]
