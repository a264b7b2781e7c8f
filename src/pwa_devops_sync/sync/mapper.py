"""Mapping of Project Online records to Azure DevOps patch documents.

Everything here is pure: no I/O, no logging of side effects. The builders
return plain lists ready to be serialized as ``application/json-patch+json``.
"""

from datetime import datetime, timezone
from typing import Any

from pwa_devops_sync.devops.models import PatchOperation
from pwa_devops_sync.pwa.models import PwaProject, PwaTask

SOURCE_LABEL = "Project Online"

TITLE_FIELD = "System.Title"
DESCRIPTION_FIELD = "System.Description"
START_DATE_FIELD = "Microsoft.VSTS.Scheduling.StartDate"
DUE_DATE_FIELD = "Microsoft.VSTS.Scheduling.DueDate"
PARENT_LINK_TYPE = "System.LinkTypes.Hierarchy-Reverse"

PROJECT_NAME_REQUIRED = "ProjectName is required."


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _starts_after_finish(start: datetime | None, finish: datetime | None) -> bool:
    if start is None or finish is None:
        return False
    return _as_utc(start) > _as_utc(finish)


def validate_project(project: PwaProject) -> list[str]:
    """Collect every validation problem of a project and its tasks.

    Args:
        project: Project to check.

    Returns:
        Validation messages; empty when the project may be written.
    """
    errors = []

    if not project.name.strip():
        errors.append(PROJECT_NAME_REQUIRED)

    if _starts_after_finish(project.start_date, project.finish_date):
        errors.append("Project start date must precede or equal the project finish date.")

    for task in project.tasks:
        if not task.name.strip():
            errors.append(f"Task name required (task '{task.uid}').")

        if _starts_after_finish(task.start_date, task.finish_date):
            errors.append(
                f"Start date must precede or equal the finish date for task '{task.name}'."
            )

    return errors


def format_timestamp(value: datetime) -> str:
    """Normalize a timestamp to ISO 8601 UTC with a 'Z' suffix.

    Naive datetimes are taken as UTC.
    """
    return _as_utc(value).isoformat().replace("+00:00", "Z")


def describe(kind: str, uid: str) -> str:
    """Description text that points back at the source record."""
    return f"Imported from {SOURCE_LABEL}. {kind}: {uid}"


def _field(name: str, value: Any) -> PatchOperation:
    return PatchOperation(path=f"/fields/{name}", value=value)


def build_parent_patch(project: PwaProject) -> list[dict[str, Any]]:
    """Build the create document of a project's top-level work item.

    Args:
        project: Source project.

    Returns:
        JSON-patch operations.
    """
    operations = [
        _field(TITLE_FIELD, project.name),
        _field(DESCRIPTION_FIELD, describe("ProjectUid", project.uid)),
    ]
    return [op.to_api_dict() for op in operations]


def build_child_patch(task: PwaTask, parent_url: str) -> list[dict[str, Any]]:
    """Build the create document of a task's child work item.

    Start and finish dates are only included when the task has them.

    Args:
        task: Source task.
        parent_url: Resource URL of the parent work item.

    Returns:
        JSON-patch operations.
    """
    operations = [
        _field(TITLE_FIELD, task.name),
        _field(DESCRIPTION_FIELD, describe("TaskUid", task.uid)),
        PatchOperation(
            path="/relations/-",
            value={
                "rel": PARENT_LINK_TYPE,
                "url": parent_url,
                "attributes": {"comment": f"Imported from {SOURCE_LABEL}"},
            },
        ),
    ]

    if task.start_date is not None:
        operations.append(_field(START_DATE_FIELD, format_timestamp(task.start_date)))
    if task.finish_date is not None:
        operations.append(_field(DUE_DATE_FIELD, format_timestamp(task.finish_date)))

    return [op.to_api_dict() for op in operations]
