"""Pytest configuration and fixtures."""

import json
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from pwa_devops_sync.auth import BearerTokenAuth, PersonalAccessTokenAuth, StaticCredential
from pwa_devops_sync.config import Config
from pwa_devops_sync.devops import AzureDevOpsClient
from pwa_devops_sync.pwa import ProjectOnlineClient, PwaProject, PwaTask
from pwa_devops_sync.sync import WorkItemGateway
from pwa_devops_sync.sync.gateway import quote_wiql
from pwa_devops_sync.utils import StorageManager

ORG_URL = "https://dev.azure.com/contoso"
PWA_URL = "https://contoso.sharepoint.com/sites/pwa"


class FakeDevOps:
    """In-memory stand-in for the work item endpoints of Azure DevOps."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.work_items: dict[int, tuple[str, str]] = {}
        self.next_id = 100
        self.wiql_status = 200
        self.fail_titles: set[str] = set()

    def seed(self, work_item_type: str, title: str) -> int:
        """Add an existing work item and return its id."""
        work_item_id = self.next_id
        self.next_id += 1
        self.work_items[work_item_id] = (work_item_type, title)
        return work_item_id

    def creates(self) -> list[httpx.Request]:
        return [r for r in self.requests if "/_apis/wit/workitems/$" in r.url.path]

    def queries(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/_apis/wit/wiql")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/_apis/wit/wiql"):
            if self.wiql_status != 200:
                return httpx.Response(self.wiql_status, text="search index unavailable")
            query = json.loads(request.content)["query"]
            matches = [
                {"id": work_item_id, "url": f"{ORG_URL}/_apis/wit/workItems/{work_item_id}"}
                for work_item_id, (work_item_type, title) in self.work_items.items()
                if f"[System.WorkItemType] = {quote_wiql(work_item_type)}" in query
                and f"[System.Title] = {quote_wiql(title)}" in query
            ]
            return httpx.Response(200, json={"workItems": matches})

        if "/_apis/wit/workitems/$" in path:
            work_item_type = path.rsplit("$", 1)[1]
            patch = json.loads(request.content)
            title = next(op["value"] for op in patch if op["path"] == "/fields/System.Title")
            if title in self.fail_titles:
                return httpx.Response(400, text='{"message": "TF401320: rule error"}')
            return httpx.Response(200, json={"id": self.seed(work_item_type, title), "rev": 1})

        return httpx.Response(404)


@pytest.fixture
def temp_config_dir() -> Path:
    """Create a temporary configuration directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def storage_manager(temp_config_dir: Path) -> StorageManager:
    """Create a storage manager with temporary directory."""
    return StorageManager(temp_config_dir)


@pytest.fixture
def config(temp_config_dir: Path) -> Config:
    """Create a config instance with temporary directory."""
    return Config(temp_config_dir)


@pytest.fixture
def fake_devops() -> FakeDevOps:
    """Create an empty fake Azure DevOps project."""
    return FakeDevOps()


@pytest.fixture
def devops_client(fake_devops: FakeDevOps) -> AzureDevOpsClient:
    """Create an Azure DevOps client talking to the fake."""
    client = AzureDevOpsClient(
        organization_url=ORG_URL,
        project="Apollo",
        auth=PersonalAccessTokenAuth(StaticCredential("pat-123")),
        transport=httpx.MockTransport(fake_devops.handler),
    )
    yield client
    client.close()


@pytest.fixture
def gateway(devops_client: AzureDevOpsClient) -> WorkItemGateway:
    """Create a gateway over the fake Azure DevOps client."""
    return WorkItemGateway(devops_client)


@pytest.fixture
def make_pwa_client():
    """Build a Project Online client around a request handler."""
    clients = []

    def build(handler) -> ProjectOnlineClient:
        client = ProjectOnlineClient(
            site_url=PWA_URL,
            auth=BearerTokenAuth(StaticCredential("pwa-token")),
            transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return client

    yield build
    for client in clients:
        client.close()


@pytest.fixture
def sample_task() -> PwaTask:
    """Create a sample task with dates."""
    return PwaTask(
        uid="task-1",
        name="Design",
        start_date=datetime(2024, 1, 1),
        finish_date=datetime(2024, 1, 5),
    )


@pytest.fixture
def sample_project(sample_task: PwaTask) -> PwaProject:
    """Create a sample project with one task."""
    return PwaProject(
        uid="proj-1",
        name="Acme Rollout",
        start_date=datetime(2024, 1, 1),
        finish_date=datetime(2024, 3, 1),
        tasks=[sample_task],
    )


@pytest.fixture
def mock_gateway() -> MagicMock:
    """Create a gateway mock that hands out increasing ids."""
    gateway = MagicMock(spec=WorkItemGateway)
    gateway.get_or_create_parent.return_value = 1
    gateway.create_child.side_effect = lambda task, parent_id: 2
    return gateway
