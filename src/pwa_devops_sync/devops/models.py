"""Pydantic models for Azure DevOps work item API payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WorkItemRef(BaseModel):
    """Work item reference returned by a WIQL query."""

    id: int
    url: str | None = None


class WiqlResult(BaseModel):
    """Flat WIQL query result."""

    model_config = ConfigDict(populate_by_name=True)

    work_items: list[WorkItemRef] = Field(default_factory=list, alias="workItems")


class WorkItem(BaseModel):
    """Work item as returned after a successful create."""

    model_config = ConfigDict(extra="ignore")

    id: int
    rev: int | None = None
    url: str | None = None
    fields: dict[str, Any] = Field(default_factory=dict)


class PatchOperation(BaseModel):
    """One JSON-patch operation of a work item create document."""

    op: str = "add"
    path: str
    value: Any

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to the wire shape.

        Returns:
            Dictionary for API submission.
        """
        return {"op": self.op, "path": self.path, "value": self.value}
