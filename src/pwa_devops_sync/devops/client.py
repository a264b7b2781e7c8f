"""Azure DevOps work item REST client."""

import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from pwa_devops_sync.devops.models import WiqlResult, WorkItem
from pwa_devops_sync.errors import AuthenticationFailed, LookupFailed, WorkItemWriteError
from pwa_devops_sync.utils.confirmation import create_confirming_client

logger = logging.getLogger(__name__)

JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"


class AzureDevOpsClient:
    """Client for the Azure DevOps work item tracking API."""

    API_VERSION = "7.1"

    def __init__(
        self,
        organization_url: str,
        project: str,
        auth: httpx.Auth,
        confirm: bool = False,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize Azure DevOps client.

        Args:
            organization_url: Organization URL (e.g., 'https://dev.azure.com/contoso').
            project: Team project that receives the work items.
            auth: Auth flow that attaches the personal access token.
            confirm: If True, prompt for confirmation before each API call.
            transport: Optional httpx transport, mainly for tests.

        Raises:
            ValueError: If organization URL or project is missing.
        """
        if not organization_url:
            raise ValueError("Azure DevOps organization URL is required")
        if not project:
            raise ValueError("Azure DevOps project is required")

        self.organization_url = organization_url.rstrip("/")
        self.project = project

        if confirm:
            self.client = create_confirming_client(
                base_url=self.organization_url + "/",
                headers={"Accept": "application/json"},
                transport=transport,
                auth=auth,
                timeout=30.0,
            )
        else:
            self.client = httpx.Client(
                base_url=self.organization_url + "/",
                headers={"Accept": "application/json"},
                transport=transport,
                auth=auth,
                timeout=30.0,
            )

    def work_item_url(self, work_item_id: int) -> str:
        """Resource URL of a work item, as used in relation links."""
        return f"{self.organization_url}/_apis/wit/workitems/{work_item_id}"

    @staticmethod
    def _check_auth(response: httpx.Response) -> None:
        if response.status_code in (401, 403):
            raise AuthenticationFailed(
                f"Azure DevOps rejected the credentials (HTTP {response.status_code})"
            )

    def create_work_item(self, work_item_type: str, patch: list[dict[str, Any]]) -> WorkItem:
        """Create a work item from a JSON-patch document.

        Args:
            work_item_type: Work item type, e.g. 'Epic' or 'Task'.
            patch: Ordered list of patch operations.

        Returns:
            The created work item.

        Raises:
            AuthenticationFailed: If the PAT is rejected.
            WorkItemWriteError: If the write fails or the response has no id.
            httpx.RequestError: On transport failures.
        """
        response = self.client.post(
            f"{self.project}/_apis/wit/workitems/${work_item_type}",
            params={"api-version": self.API_VERSION},
            content=json.dumps(patch),
            headers={"Content-Type": JSON_PATCH_CONTENT_TYPE},
        )
        self._check_auth(response)

        if not response.is_success:
            logger.error(
                f"Failed to create {work_item_type}. "
                f"Status {response.status_code}. Body: {response.text}"
            )
            raise WorkItemWriteError(work_item_type, response.status_code, response.text)

        try:
            return WorkItem.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Unreadable {work_item_type} create response: {e}")
            raise WorkItemWriteError(work_item_type, response.status_code, response.text) from e

    def query_wiql(self, query: str) -> WiqlResult:
        """Run a flat WIQL query.

        Args:
            query: WIQL query text.

        Returns:
            Matching work item references in index order.

        Raises:
            AuthenticationFailed: If the PAT is rejected.
            LookupFailed: If the query fails or the response is unreadable.
        """
        try:
            response = self.client.post(
                f"{self.project}/_apis/wit/wiql",
                params={"api-version": self.API_VERSION},
                json={"query": query},
            )
        except httpx.RequestError as e:
            raise LookupFailed(f"WIQL request failed: {e}") from e

        self._check_auth(response)

        if not response.is_success:
            raise LookupFailed(
                f"WIQL query failed. Status {response.status_code}. Body: {response.text}"
            )

        try:
            return WiqlResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise LookupFailed(f"Unreadable WIQL response: {e}") from e

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "AzureDevOpsClient":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
