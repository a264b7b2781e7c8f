"""Azure DevOps integration."""

from pwa_devops_sync.devops.client import AzureDevOpsClient
from pwa_devops_sync.devops.models import PatchOperation, WiqlResult, WorkItem, WorkItemRef

__all__ = [
    "AzureDevOpsClient",
    "PatchOperation",
    "WiqlResult",
    "WorkItem",
    "WorkItemRef",
]
