"""Task hierarchy, recurrence and pattern analysis for MindMesh."""

from mindmesh.engine.hierarchy import TaskForest, TaskNode, build_hierarchy
from mindmesh.engine.recurrence import next_due_date, build_successor, complete_and_maybe_recur

__all__ = [
    "TaskForest",
    "TaskNode",
    "build_hierarchy",
    "next_due_date",
    "build_successor",
    "complete_and_maybe_recur",
]
