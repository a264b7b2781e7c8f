"""Sync engine pushing Project Online projects into Azure DevOps."""

import logging
from collections.abc import Sequence
from typing import Any

from pwa_devops_sync.errors import ErrorCode
from pwa_devops_sync.pwa.models import PwaProject
from pwa_devops_sync.sync.gateway import WorkItemGateway
from pwa_devops_sync.sync.mapper import validate_project

logger = logging.getLogger(__name__)


class SyncResult:
    """Results from one sync call."""

    def __init__(self) -> None:
        """Initialize sync result."""
        self.success: bool | None = None
        self.message: str | None = None
        self.error_code: ErrorCode | None = None
        self.validation_errors: list[str] = []
        self.failures: list[str] = []
        self.projects_processed = 0
        self.work_items_created = 0
        # No update path exists; reported for the response shape
        self.work_items_updated = 0
        self.errors = 0

    @classmethod
    def validation_failed(cls, validation_errors: list[str]) -> "SyncResult":
        """Result for a request rejected before any write."""
        result = cls()
        result.success = False
        result.error_code = ErrorCode.VALIDATION_FAILED
        result.errors = len(validation_errors)
        result.validation_errors = list(validation_errors)
        result.message = " ".join(validation_errors)
        return result

    @classmethod
    def from_error(cls, message: str, error_code: ErrorCode) -> "SyncResult":
        """Result for a request that failed as a whole."""
        result = cls()
        result.success = False
        result.error_code = error_code
        result.errors = 1
        result.message = message
        return result

    def add_project(self) -> None:
        """Record a project picked up for processing."""
        self.projects_processed += 1

    def add_created(self) -> None:
        """Record a created (or reused) work item."""
        self.work_items_created += 1

    def add_failure(self, error: str) -> None:
        """Record a failed item."""
        self.errors += 1
        self.failures.append(error)

    def add_validation_errors(self, messages: list[str]) -> None:
        """Record the validation messages of a rejected project."""
        self.errors += len(messages)
        self.validation_errors.extend(messages)
        self.error_code = ErrorCode.VALIDATION_FAILED

    def finalize(self) -> "SyncResult":
        """Fill in success and message unless already decided."""
        if self.success is None:
            self.success = self.errors == 0
        if not self.message:
            self.message = "Sync completed." if self.errors == 0 else "Sync completed with some errors."
        return self

    def to_dict(self) -> dict[str, Any]:
        """Caller-facing response shape."""
        return {
            "success": bool(self.success),
            "message": self.message,
            "errorCode": self.error_code.value if self.error_code else None,
            "validationErrors": list(self.validation_errors),
            "projectsProcessed": self.projects_processed,
            "workItemsCreated": self.work_items_created,
            "workItemsUpdated": self.work_items_updated,
            "errors": self.errors,
        }

    def __str__(self) -> str:
        """String representation of results."""
        return (
            f"Projects: {self.projects_processed}, "
            f"Created: {self.work_items_created}, "
            f"Updated: {self.work_items_updated}, "
            f"Errors: {self.errors}"
        )


class SyncEngine:
    """Main synchronization engine.

    Projects and their tasks are processed one after another in input
    order. A failing task never stops its siblings and a failing project
    never stops the batch.
    """

    def __init__(self, gateway: WorkItemGateway) -> None:
        """Initialize sync engine.

        Args:
            gateway: Work item gateway for the target project.
        """
        self.gateway = gateway

    def sync_batch(
        self, projects: Sequence[PwaProject], result: SyncResult | None = None
    ) -> SyncResult:
        """Synchronize projects and their tasks to Azure DevOps.

        Args:
            projects: Projects to push.
            result: Result to accumulate into, e.g. one already holding
                entries rejected while parsing. A fresh one by default.

        Returns:
            Aggregated results; never raises for a bad project.

        Raises:
            ValueError: If ``projects`` is None.
        """
        if projects is None:
            raise ValueError("projects must not be None")

        if result is None:
            result = SyncResult()
        for project in projects:
            self._sync_project(project, result)

        logger.info(f"Sync complete: {result}")
        return result.finalize()

    def sync_one(self, project: PwaProject) -> SyncResult:
        """Validate and synchronize a single project.

        Returns:
            A validation-failed result if the project is invalid, otherwise
            the result of ``sync_batch([project])``.
        """
        validation_errors = validate_project(project)
        if validation_errors:
            logger.warning(
                f"Project {project.name} ({project.uid}) failed validation: "
                f"{'; '.join(validation_errors)}"
            )
            return SyncResult.validation_failed(validation_errors)

        logger.info(
            f"Starting Azure DevOps sync for project {project.name} "
            f"({project.uid}) in mode {project.mode.value}"
        )
        return self.sync_batch([project])

    def _sync_project(self, project: PwaProject, result: SyncResult) -> None:
        """Sync one project into ``result``; never raises."""
        result.add_project()
        # Entries may not be PwaProject at all; the label must not raise
        name = getattr(project, "name", None)
        label = f"'{name}' ({getattr(project, 'uid', '?')})" if name is not None else repr(project)

        try:
            logger.info(f"Syncing project {label}")

            validation_errors = validate_project(project)
            if validation_errors:
                logger.error(
                    f"Skipping project {project.name} ({project.uid}): "
                    f"{'; '.join(validation_errors)}"
                )
                result.add_validation_errors(validation_errors)
                return

            parent_id = self.gateway.get_or_create_parent(project)
            if parent_id is None or parent_id <= 0:
                logger.error(f"Gateway returned invalid parent id {parent_id} for {project.name}")
                result.add_failure(f"Invalid parent work item id {parent_id} for project '{project.name}'")
                return

            result.add_created()

            if not project.tasks:
                logger.info(f"Project {project.name} has no tasks to sync")
                return

            self._sync_tasks(project, parent_id, result)

        except Exception as e:
            logger.error(f"Error syncing project {label}: {e}", exc_info=True)
            result.add_failure(f"Project {label}: {e}")

    def _sync_tasks(self, project: PwaProject, parent_id: int, result: SyncResult) -> None:
        """Create a child work item for every task of ``project``."""
        for task in project.tasks:
            try:
                self.gateway.create_child(task, parent_id)
                result.add_created()
            except Exception as e:
                logger.error(
                    f"Error creating work item for task {task.name} ({task.uid}) "
                    f"in project {project.name}: {e}"
                )
                result.add_failure(f"Task '{task.name}' ({task.uid}): {e}")
