"""Idempotent creation of Azure DevOps work items for Project Online data."""

import logging
from enum import Enum

from pwa_devops_sync.devops import AzureDevOpsClient
from pwa_devops_sync.errors import LookupFailed
from pwa_devops_sync.pwa.models import PwaProject, PwaTask
from pwa_devops_sync.sync.mapper import build_child_patch, build_parent_patch

logger = logging.getLogger(__name__)


class LookupFailurePolicy(str, Enum):
    """What to do when the parent lookup query itself fails."""

    # Assume no parent exists; may duplicate the parent during an outage
    CREATE = "create"
    # Give up on the project; nothing is written
    ABORT = "abort"


def quote_wiql(value: str) -> str:
    """Quote a string literal for WIQL, doubling embedded single quotes."""
    return "'" + value.replace("'", "''") + "'"


class WorkItemGateway:
    """Creates parent and child work items through an AzureDevOpsClient.

    Parents are upserted by title: a project whose name already has a
    parent of the configured type reuses it. Children are always created.
    """

    def __init__(
        self,
        client: AzureDevOpsClient,
        parent_type: str = "Epic",
        child_type: str = "Task",
        lookup_failure: LookupFailurePolicy = LookupFailurePolicy.CREATE,
    ) -> None:
        """Initialize the gateway.

        Args:
            client: Azure DevOps client.
            parent_type: Work item type created per project.
            child_type: Work item type created per task.
            lookup_failure: Policy applied when the parent lookup fails.
        """
        self.client = client
        self.parent_type = parent_type
        self.child_type = child_type
        self.lookup_failure = lookup_failure

    def build_parent_query(self, project_name: str) -> str:
        """WIQL selecting parents of the configured type titled exactly ``project_name``."""
        return (
            "SELECT [System.Id] FROM WorkItems WHERE "
            f"[System.TeamProject] = {quote_wiql(self.client.project)} "
            f"AND [System.WorkItemType] = {quote_wiql(self.parent_type)} "
            f"AND [System.Title] = {quote_wiql(project_name)}"
        )

    def find_parent_by_name(self, project_name: str) -> int | None:
        """Look up an existing parent work item by title.

        Args:
            project_name: Project name used as the title.

        Returns:
            Id of the first match in index order, or None.

        Raises:
            LookupFailed: If the query cannot be completed.
        """
        if not project_name or not project_name.strip():
            return None

        logger.info(f"Searching existing {self.parent_type} by name {project_name}")
        result = self.client.query_wiql(self.build_parent_query(project_name))

        if not result.work_items:
            return None

        if len(result.work_items) > 1:
            logger.warning(
                f"{len(result.work_items)} {self.parent_type} items are titled "
                f"{project_name}; using {result.work_items[0].id}"
            )

        work_item_id = result.work_items[0].id
        logger.info(f"Found existing {self.parent_type} {work_item_id} for {project_name}")
        return work_item_id

    def create_parent(self, project: PwaProject) -> int:
        """Create the parent work item of a project.

        Returns:
            Id assigned by Azure DevOps.
        """
        logger.info(f"Creating {self.parent_type} in Azure DevOps: {project.name}")
        work_item = self.client.create_work_item(self.parent_type, build_parent_patch(project))
        return work_item.id

    def get_or_create_parent(self, project: PwaProject) -> int:
        """Return the parent work item of a project, creating it if missing.

        Args:
            project: Project whose name keys the parent.

        Returns:
            Existing or newly assigned work item id.

        Raises:
            LookupFailed: If the lookup fails under the ABORT policy.
            WorkItemWriteError: If creation fails.
        """
        try:
            existing_id = self.find_parent_by_name(project.name)
        except LookupFailed as e:
            if self.lookup_failure is LookupFailurePolicy.ABORT:
                logger.error(f"Parent lookup for {project.name} failed: {e.message}")
                raise
            logger.warning(
                f"Parent lookup for {project.name} failed, creating a new "
                f"{self.parent_type}: {e.message}"
            )
            existing_id = None

        if existing_id is not None:
            return existing_id
        return self.create_parent(project)

    def create_child(self, task: PwaTask, parent_id: int) -> int:
        """Create the child work item of a task under ``parent_id``.

        No lookup is made; running twice creates two children.

        Returns:
            Id assigned by Azure DevOps.

        Raises:
            WorkItemWriteError: If creation fails.
        """
        patch = build_child_patch(task, self.client.work_item_url(parent_id))
        logger.info(f"Creating {self.child_type} in Azure DevOps: {task.name}")
        work_item = self.client.create_work_item(self.child_type, patch)
        return work_item.id
