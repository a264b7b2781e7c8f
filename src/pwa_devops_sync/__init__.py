"""Push Project Online projects and tasks into Azure DevOps work items."""

__version__ = "0.1.0"
