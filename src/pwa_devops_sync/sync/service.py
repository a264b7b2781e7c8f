"""Request-level entry points that always answer with a SyncResult."""

import logging
import uuid
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from pwa_devops_sync.errors import (
    AuthenticationFailed,
    ConfigurationError,
    ErrorCode,
    ProjectNotFound,
)
from pwa_devops_sync.pwa import ProjectOnlineClient, PwaProject, PwaProjectSummary, SyncMode
from pwa_devops_sync.sync.engine import SyncEngine, SyncResult
from pwa_devops_sync.sync.mapper import PROJECT_NAME_REQUIRED

logger = logging.getLogger(__name__)


def _format_validation_error(error: ValidationError) -> list[str]:
    messages = []
    for item in error.errors():
        message = item["msg"].removeprefix("Value error, ")
        if item["type"] == "value_error":
            messages.append(message)
        else:
            location = ".".join(str(part) for part in item["loc"])
            messages.append(f"{location}: {message}")
    return messages


class SyncService:
    """Turns sync requests into SyncResults.

    Business failures (validation, unknown project, authentication, any
    unexpected error) are reported on the result, never raised.
    """

    def __init__(self, engine: SyncEngine, pwa_client: ProjectOnlineClient | None = None) -> None:
        """Initialize the service.

        Args:
            engine: Sync engine writing to Azure DevOps.
            pwa_client: Project Online client; only needed for requests that
                read from Project Online.
        """
        self.engine = engine
        self.pwa_client = pwa_client

    def _require_pwa(self) -> ProjectOnlineClient:
        if self.pwa_client is None:
            raise ConfigurationError("Project Online is not configured")
        return self.pwa_client

    def list_projects(self) -> list[PwaProjectSummary]:
        """List projects published in Project Online."""
        return self._require_pwa().list_projects()

    def get_project(self, project_uid: str) -> PwaProject | None:
        """Load a Project Online project with its tasks."""
        return self._require_pwa().get_project_with_tasks(project_uid)

    def sync_payload(self, payload: dict[str, Any] | None) -> SyncResult:
        """Sync a project described by a request payload.

        In ``PwaProjectToDevOps`` mode the project must exist in Project
        Online under the given name; its uid and dates fill in whatever the
        payload left out. In ``DevOpsOnly`` mode the payload is pushed as is,
        with a generated uid if it has none.

        Args:
            payload: Project fields (``projectName``, ``tasks``, ``mode``...).

        Returns:
            Sync result.
        """
        if payload is None:
            return SyncResult.from_error("Invalid project payload.", ErrorCode.INVALID_PAYLOAD)

        try:
            project = PwaProject.model_validate(payload)
        except ValidationError as e:
            return SyncResult.validation_failed(_format_validation_error(e))

        if not project.name.strip():
            return SyncResult.validation_failed([PROJECT_NAME_REQUIRED])

        return self._guarded(project.name, lambda: self._sync_by_mode(project))

    def sync_payloads(self, payloads: list[Any]) -> SyncResult:
        """Sync a batch of project payloads as they are.

        Each entry is parsed on its own. An entry that does not parse counts
        as a processed project with validation errors; the others still go
        through ``SyncEngine.sync_batch``.

        Args:
            payloads: Project payloads, as read from a JSON list.

        Returns:
            Aggregated sync result.
        """
        result = SyncResult()
        projects = []
        for index, item in enumerate(payloads, start=1):
            try:
                projects.append(PwaProject.model_validate(item))
            except ValidationError as e:
                messages = [f"Project #{index}: {m}" for m in _format_validation_error(e)]
                logger.error(f"Rejected project #{index}: {'; '.join(messages)}")
                result.add_project()
                result.add_validation_errors(messages)

        return self.engine.sync_batch(projects, result)

    def _sync_by_mode(self, project: PwaProject) -> SyncResult:
        if project.mode is SyncMode.SOURCE_TO_TARGET:
            match = next(iter(self._require_pwa().find_projects_by_name(project.name)), None)
            if match is None:
                raise ProjectNotFound(
                    f"No Project Online project was found with the name '{project.name}'."
                )
            project = project.model_copy(
                update={
                    "uid": project.uid or match.uid,
                    "start_date": project.start_date or match.start_date,
                    "finish_date": project.finish_date or match.finish_date,
                }
            )
        elif project.mode is SyncMode.TARGET_ONLY:
            if not project.uid.strip():
                project = project.model_copy(update={"uid": str(uuid.uuid4())})
        else:
            raise ValueError(f"Unhandled sync mode {project.mode!r}")

        return self.engine.sync_one(project)

    def sync_by_uid(self, project_uid: str) -> SyncResult:
        """Load a project from Project Online by uid and sync it."""

        def run() -> SyncResult:
            project = self._require_pwa().get_project_with_tasks(project_uid)
            if project is None:
                raise ProjectNotFound(f"Project {project_uid} not found in Project Online.")
            return self.engine.sync_one(project)

        return self._guarded(project_uid, run)

    def sync_by_name(self, project_name: str) -> SyncResult:
        """Sync the one Project Online project carrying ``project_name``.

        The name is matched ignoring case and must be unique.
        """
        if not project_name or not project_name.strip():
            return SyncResult.from_error(PROJECT_NAME_REQUIRED, ErrorCode.INVALID_PAYLOAD)

        def run() -> SyncResult:
            pwa = self._require_pwa()
            matches = pwa.find_projects_by_name(project_name)
            if not matches:
                raise ProjectNotFound(
                    f"No Project Online project was found with the name '{project_name}'."
                )
            if len(matches) > 1:
                return SyncResult.from_error(
                    "Multiple Project Online projects share that name. Please specify a unique one.",
                    ErrorCode.AMBIGUOUS_PROJECT,
                )

            project = pwa.get_project_with_tasks(matches[0].uid)
            if project is None:
                raise ProjectNotFound("The project was found but its tasks could not be loaded.")
            return self.engine.sync_one(project)

        return self._guarded(project_name, run)

    def _guarded(self, label: str, run: Callable[[], SyncResult]) -> SyncResult:
        """Run a request, converting escaping exceptions into results."""
        try:
            result = run()
        except ProjectNotFound as e:
            logger.warning(f"Cannot sync {label}: {e.message}")
            return SyncResult.from_error(e.message, e.code)
        except ConfigurationError as e:
            logger.error(f"Cannot sync {label}: {e.message}")
            return SyncResult.from_error(f"{e.message}.", e.code)
        except AuthenticationFailed as e:
            logger.error(f"Authentication error while syncing {label}: {e}", exc_info=True)
            return SyncResult.from_error(
                "An authentication error occurred while contacting Project Online or Azure DevOps.",
                ErrorCode.AUTH_FAILED,
            )
        except Exception as e:
            logger.error(f"Unexpected error syncing {label}: {e}", exc_info=True)
            return SyncResult.from_error(
                "Unexpected error syncing project to Azure DevOps.",
                ErrorCode.UNEXPECTED_ERROR,
            )

        logger.info(f"Sync finished for {label}: {result}")
        return result
