"""Tests for sync engine."""

import json
from datetime import datetime
from unittest.mock import MagicMock, call

import pytest

from pwa_devops_sync.errors import ErrorCode, WorkItemWriteError
from pwa_devops_sync.pwa import PwaProject, PwaTask
from pwa_devops_sync.sync import SyncEngine, SyncResult, WorkItemGateway


class TestSyncResult:
    """Test SyncResult functionality."""

    def test_initialization(self) -> None:
        """Test SyncResult initialization."""
        result = SyncResult()

        assert result.success is None
        assert result.message is None
        assert result.projects_processed == 0
        assert result.work_items_created == 0
        assert result.work_items_updated == 0
        assert result.errors == 0
        assert result.validation_errors == []

    def test_add_failure(self) -> None:
        result = SyncResult()
        result.add_failure("Task 'X' (t): boom")

        assert result.errors == 1
        assert result.failures == ["Task 'X' (t): boom"]

    def test_finalize_success(self) -> None:
        result = SyncResult()
        result.add_created()

        result.finalize()

        assert result.success is True
        assert result.message == "Sync completed."

    def test_finalize_with_errors(self) -> None:
        result = SyncResult()
        result.add_failure("boom")

        result.finalize()

        assert result.success is False
        assert result.message == "Sync completed with some errors."

    def test_validation_failed(self) -> None:
        result = SyncResult.validation_failed(["First.", "Second."])

        assert result.success is False
        assert result.error_code is ErrorCode.VALIDATION_FAILED
        assert result.errors == 2
        assert result.message == "First. Second."

    def test_to_dict(self) -> None:
        """Test the caller-facing response shape."""
        result = SyncResult.from_error("Nope.", ErrorCode.NOT_FOUND)

        assert result.to_dict() == {
            "success": False,
            "message": "Nope.",
            "errorCode": "NotFound",
            "validationErrors": [],
            "projectsProcessed": 0,
            "workItemsCreated": 0,
            "workItemsUpdated": 0,
            "errors": 1,
        }

    def test_str_representation(self) -> None:
        result = SyncResult()
        result.add_project()
        result.add_created()
        result.add_failure("error")

        result_str = str(result)
        assert "Projects: 1" in result_str
        assert "Created: 1" in result_str
        assert "Errors: 1" in result_str


class TestSyncEngine:
    """Test SyncEngine functionality."""

    def test_none_input_raises(self, mock_gateway: MagicMock) -> None:
        with pytest.raises(ValueError):
            SyncEngine(mock_gateway).sync_batch(None)

    def test_empty_batch(self, mock_gateway: MagicMock) -> None:
        result = SyncEngine(mock_gateway).sync_batch([])

        assert result.success is True
        assert result.projects_processed == 0

    def test_sync_creates_parent_and_children(
        self, mock_gateway: MagicMock, sample_project: PwaProject
    ) -> None:
        result = SyncEngine(mock_gateway).sync_batch([sample_project])

        assert result.success is True
        assert result.projects_processed == 1
        assert result.work_items_created == 2
        assert result.errors == 0
        mock_gateway.create_child.assert_called_once_with(sample_project.tasks[0], 1)

    def test_project_without_tasks(self, mock_gateway: MagicMock) -> None:
        result = SyncEngine(mock_gateway).sync_batch([PwaProject(uid="p", name="Empty")])

        assert result.work_items_created == 1
        mock_gateway.create_child.assert_not_called()

    def test_start_after_finish_is_rejected(self, mock_gateway: MagicMock) -> None:
        project = PwaProject(
            uid="p",
            name="Backwards",
            start_date=datetime(2024, 2, 1),
            finish_date=datetime(2024, 1, 1),
        )

        result = SyncEngine(mock_gateway).sync_batch([project])

        assert result.errors >= 1
        assert result.work_items_created == 0
        assert any("finish" in message for message in result.validation_errors)
        assert result.success is False

    def test_empty_task_name_blocks_all_writes(self, mock_gateway: MagicMock) -> None:
        """Test that an invalid task keeps the whole project away from the gateway."""
        project = PwaProject(
            uid="p",
            name="Acme",
            tasks=[PwaTask(uid="t-1", name="Good"), PwaTask(uid="t-2", name="")],
        )

        result = SyncEngine(mock_gateway).sync_batch([project])

        assert result.errors == 1
        assert mock_gateway.mock_calls == []

    def test_task_failure_is_isolated(self, mock_gateway: MagicMock) -> None:
        """Test that the second of three tasks failing does not stop the third."""
        tasks = [PwaTask(uid=f"t-{i}", name=f"Task {i}") for i in range(1, 4)]
        project = PwaProject(uid="p", name="Acme", tasks=tasks)
        mock_gateway.create_child.side_effect = [
            10,
            WorkItemWriteError("Task", 400, "rule error"),
            12,
        ]

        result = SyncEngine(mock_gateway).sync_batch([project])

        assert mock_gateway.create_child.call_args_list == [call(task, 1) for task in tasks]
        assert result.work_items_created == 3
        assert result.errors == 1
        assert "Task 2" in result.failures[0]
        assert result.success is False
        assert result.message == "Sync completed with some errors."

    def test_two_task_project_with_one_failure(self, mock_gateway: MagicMock) -> None:
        tasks = [PwaTask(uid=f"t-{i}", name=f"Task {i}") for i in range(1, 3)]
        mock_gateway.create_child.side_effect = [10, RuntimeError("timeout")]

        result = SyncEngine(mock_gateway).sync_batch([PwaProject(uid="p", name="A", tasks=tasks)])

        # parent + first task
        assert result.work_items_created == 2
        assert result.errors == 1

    @pytest.mark.parametrize("bad_id", [0, -1, None])
    def test_invalid_parent_id_abandons_project(self, mock_gateway: MagicMock, bad_id, sample_project) -> None:
        mock_gateway.get_or_create_parent.return_value = bad_id

        result = SyncEngine(mock_gateway).sync_batch([sample_project])

        assert result.errors == 1
        assert result.work_items_created == 0
        mock_gateway.create_child.assert_not_called()

    def test_parent_exception_is_contained(self, mock_gateway: MagicMock, sample_project) -> None:
        mock_gateway.get_or_create_parent.side_effect = WorkItemWriteError("Epic", 500, "down")

        result = SyncEngine(mock_gateway).sync_batch([sample_project, sample_project])

        assert result.projects_processed == 2
        assert result.errors == 2
        assert result.work_items_created == 0

    def test_batch_with_malformed_project(self, mock_gateway: MagicMock, sample_project) -> None:
        """Test that one malformed project does not stop the valid one."""
        malformed = PwaProject(uid="bad", name="Bad", tasks=[PwaTask(uid="t", name=" ")])

        result = SyncEngine(mock_gateway).sync_batch([sample_project, malformed])

        assert result.projects_processed == 2
        assert result.errors == 1
        assert result.work_items_created == 2
        assert result.validation_errors == ["Task name required (task 't')."]
        mock_gateway.get_or_create_parent.assert_called_once_with(sample_project)

    def test_non_project_entry_is_contained(self, mock_gateway: MagicMock, sample_project) -> None:
        """Test that an entry without project attributes is an error, not a crash."""
        result = SyncEngine(mock_gateway).sync_batch([sample_project, None])

        assert result.projects_processed == 2
        assert result.work_items_created == 2
        assert result.errors == 1
        assert result.failures[0].startswith("Project None:")
        assert result.success is False

    def test_blank_project_name_never_written(self, mock_gateway: MagicMock) -> None:
        result = SyncEngine(mock_gateway).sync_batch([PwaProject(uid="p", name="  ")])

        assert result.validation_errors == ["ProjectName is required."]
        mock_gateway.get_or_create_parent.assert_not_called()

    def test_accumulates_into_given_result(self, mock_gateway: MagicMock, sample_project) -> None:
        result = SyncResult()
        result.add_project()
        result.add_validation_errors(["Project #1: startDate: invalid"])

        returned = SyncEngine(mock_gateway).sync_batch([sample_project], result)

        assert returned is result
        assert result.projects_processed == 2
        assert result.work_items_created == 2
        assert result.success is False
        assert result.message == "Sync completed with some errors."

    def test_projects_processed_in_order(self, mock_gateway: MagicMock) -> None:
        projects = [PwaProject(uid=str(i), name=f"P{i}") for i in range(3)]

        SyncEngine(mock_gateway).sync_batch(projects)

        names = [c.args[0].name for c in mock_gateway.get_or_create_parent.call_args_list]
        assert names == ["P0", "P1", "P2"]

    def test_sync_one_validation_short_circuits(self, mock_gateway: MagicMock) -> None:
        project = PwaProject(
            uid="p",
            name="Backwards",
            start_date=datetime(2024, 2, 1),
            finish_date=datetime(2024, 1, 1),
            tasks=[PwaTask(uid="t", name="")],
        )

        result = SyncEngine(mock_gateway).sync_one(project)

        assert result.error_code is ErrorCode.VALIDATION_FAILED
        assert result.errors == 2
        assert result.projects_processed == 0
        assert mock_gateway.mock_calls == []

    def test_sync_one_valid(self, mock_gateway: MagicMock, sample_project) -> None:
        result = SyncEngine(mock_gateway).sync_one(sample_project)

        assert result.to_dict()["workItemsCreated"] == 2
        assert result.success is True


class TestEndToEnd:
    """Run the engine against the fake Azure DevOps endpoints."""

    def test_acme_rollout(self, gateway: WorkItemGateway, fake_devops) -> None:
        """Test one parent and one linked child for a fresh project."""
        project = PwaProject.model_validate(
            {
                "name": "Acme Rollout",
                "tasks": [{"name": "Design", "start": "2024-01-01", "finish": "2024-01-05"}],
            }
        )

        result = SyncEngine(gateway).sync_batch([project])

        creates = fake_devops.creates()
        assert [r.url.path.rsplit("$", 1)[1] for r in creates] == ["Epic", "Task"]
        parent_id = next(i for i, (t, _) in fake_devops.work_items.items() if t == "Epic")
        child_patch = json.loads(creates[1].content)
        relation = next(op for op in child_patch if op["path"] == "/relations/-")
        assert relation["value"]["rel"] == "System.LinkTypes.Hierarchy-Reverse"
        assert relation["value"]["url"].endswith(f"/_apis/wit/workitems/{parent_id}")

        summary = result.to_dict()
        assert summary["success"] is True
        assert summary["projectsProcessed"] == 1
        assert summary["workItemsCreated"] == 2
        assert summary["errors"] == 0

    def test_rerun_reuses_parent_but_duplicates_children(
        self, gateway: WorkItemGateway, fake_devops, sample_project
    ) -> None:
        engine = SyncEngine(gateway)

        engine.sync_batch([sample_project])
        engine.sync_batch([sample_project])

        types = sorted(t for t, _ in fake_devops.work_items.values())
        assert types == ["Epic", "Task", "Task"]
