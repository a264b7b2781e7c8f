"""Project Online (PWA) REST client."""

import logging
from typing import Any

import httpx

from pwa_devops_sync.errors import AuthenticationFailed
from pwa_devops_sync.pwa.models import ODataProject, ODataTask, PwaProject, PwaProjectSummary
from pwa_devops_sync.utils.confirmation import create_confirming_client

logger = logging.getLogger(__name__)

PROJECT_FIELDS = "Id,Name,StartDate,FinishDate"
TASK_FIELDS = "Id,Name,Start,Finish"


class ProjectOnlineClient:
    """Read-only client for the ProjectServer REST API of a PWA site."""

    def __init__(
        self,
        site_url: str,
        auth: httpx.Auth,
        confirm: bool = False,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize Project Online client.

        Args:
            site_url: PWA site URL (e.g., 'https://contoso.sharepoint.com/sites/pwa').
            auth: Auth flow that attaches the bearer token.
            confirm: If True, prompt for confirmation before each API call.
            transport: Optional httpx transport, mainly for tests.
        """
        if not site_url:
            raise ValueError("Project Online site URL is required")

        self.site_url = site_url.rstrip("/")
        base_url = f"{self.site_url}/_api/ProjectServer"
        headers = {"Accept": "application/json;odata=nometadata"}

        if confirm:
            self.client = create_confirming_client(
                base_url=base_url,
                headers=headers,
                transport=transport,
                auth=auth,
                timeout=30.0,
            )
        else:
            self.client = httpx.Client(
                base_url=base_url,
                headers=headers,
                transport=transport,
                auth=auth,
                timeout=30.0,
            )

    def _get(self, path: str, params: dict[str, str] | None = None) -> httpx.Response:
        response = self.client.get(path, params=params)
        if response.status_code in (401, 403):
            raise AuthenticationFailed(
                f"Project Online rejected the credentials (HTTP {response.status_code})"
            )
        return response

    @staticmethod
    def _values(response: httpx.Response) -> list[dict[str, Any]]:
        data = response.json()
        # odata=verbose wraps collections in d.results
        if "value" in data:
            return data["value"]
        return data.get("d", {}).get("results", [])

    def list_projects(self) -> list[PwaProjectSummary]:
        """List all published projects.

        Returns:
            Project summaries without tasks.

        Raises:
            AuthenticationFailed: If the token is rejected.
            httpx.HTTPError: If API request fails.
        """
        response = self._get("/Projects", params={"$select": PROJECT_FIELDS})
        response.raise_for_status()

        projects = [ODataProject(**item).to_summary() for item in self._values(response)]
        logger.info(f"Loaded {len(projects)} projects from Project Online")
        return projects

    def find_projects_by_name(self, name: str) -> list[PwaProjectSummary]:
        """Find projects whose name matches, ignoring case.

        Args:
            name: Project name.

        Returns:
            Matching projects in listing order.
        """
        wanted = name.strip().casefold()
        return [p for p in self.list_projects() if p.name.casefold() == wanted]

    def get_project_with_tasks(self, project_uid: str) -> PwaProject | None:
        """Load a project and its tasks.

        Args:
            project_uid: Project GUID.

        Returns:
            The project, or None if Project Online does not know it.

        Raises:
            AuthenticationFailed: If the token is rejected.
            httpx.HTTPError: If API request fails.
        """
        path = f"/Projects('{project_uid}')"

        response = self._get(path, params={"$select": PROJECT_FIELDS})
        if response.status_code == 404:
            logger.warning(f"Project {project_uid} not found in Project Online")
            return None
        response.raise_for_status()
        project = ODataProject(**response.json())

        response = self._get(f"{path}/Tasks", params={"$select": TASK_FIELDS})
        response.raise_for_status()
        tasks = [ODataTask(**item).to_task() for item in self._values(response)]

        logger.debug(f"Loaded project {project.name} with {len(tasks)} tasks")
        return PwaProject(
            uid=project.id,
            name=project.name,
            start_date=project.start_date,
            finish_date=project.finish_date,
            tasks=tasks,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "ProjectOnlineClient":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
