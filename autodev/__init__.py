"""Task decomposition, progress tracking, project analysis, agent routing and sandboxed execution."""

__version__ = "0.1.0"
__all__ = ["decompose", "progress", "project", "router", "sandbox"]