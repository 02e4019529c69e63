"""Task hierarchy for MindMesh.

Builds a forest from a flat, owner-scoped task list using parent references.
Nodes live in a flat list and refer to each other by index, so the structure
never owns cycles even if the stored data contains one.
"""

from typing import Any, Dict, Iterator, List, Optional

from mindmesh.models.task import Task


class TaskNode:
    """One task in the forest plus its transient UI state."""

    def __init__(self, task: Task, index: int):
        self.task = task
        self.index = index
        self.parent: Optional[int] = None
        self.children: List[int] = []
        # Not persisted; rebuilt collapsed on every load.
        self.is_expanded: bool = False

    @property
    def id(self) -> str:
        return self.task.id


def _order_key(node: TaskNode) -> int:
    return node.task.task_order or 0


class TaskForest:
    """Index-based forest of tasks."""

    def __init__(self, nodes: List[TaskNode], roots: List[int]):
        self.nodes = nodes
        self.roots = roots
        self._by_id: Dict[str, int] = {node.id: node.index for node in nodes}

    def __len__(self) -> int:
        return len(self.nodes)

    def find(self, task_id: str) -> Optional[TaskNode]:
        idx = self._by_id.get(task_id)
        return self.nodes[idx] if idx is not None else None

    def children_of(self, task_id: str) -> List[Task]:
        node = self.find(task_id)
        if node is None:
            return []
        return [self.nodes[i].task for i in node.children]

    def root_tasks(self) -> List[Task]:
        return [self.nodes[i].task for i in self.roots]

    def toggle_expansion(self, task_id: str) -> Optional[bool]:
        """Flip the expanded flag of a node.

        Returns:
            The new flag value, or None if no node has that id (no-op).
        """
        node = self.find(task_id)
        if node is None:
            return None
        node.is_expanded = not node.is_expanded
        return node.is_expanded

    def walk(self) -> Iterator[TaskNode]:
        """Depth-first, sibling-ordered traversal of every node."""
        stack = list(reversed(self.roots))
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def to_tree(self) -> List[Dict[str, Any]]:
        """Render the forest as nested dicts (`subtasks` holds children)."""
        def render(idx: int) -> Dict[str, Any]:
            node = self.nodes[idx]
            data = node.task.model_dump(mode="json")
            data["is_expanded"] = node.is_expanded
            data["subtasks"] = [render(child) for child in node.children]
            return data

        return [render(idx) for idx in self.roots]


def _break_cycles(nodes: List[TaskNode]) -> None:
    """Detach every node that sits on a parent cycle so it becomes a root."""
    UNVISITED, VISITING, DONE = 0, 1, 2
    state = [UNVISITED] * len(nodes)

    for start in range(len(nodes)):
        path: List[int] = []
        current: Optional[int] = start
        while current is not None and state[current] == UNVISITED:
            state[current] = VISITING
            path.append(current)
            current = nodes[current].parent

        if current is not None and state[current] == VISITING:
            # current is on the path we just walked: everything from it onward is the loop.
            for idx in path[path.index(current):]:
                nodes[idx].parent = None

        for idx in path:
            state[idx] = DONE


def build_hierarchy(tasks: List[Task]) -> TaskForest:
    """Build a forest from a flat task list.

    - A task is placed under its parent when the parent is in `tasks`;
      otherwise (parent filtered out, deleted, or never loaded) it is a root.
    - Siblings are sorted ascending by `task_order` (None counts as 0). The sort
      is stable, so ties keep input order.
    - Tasks caught in a parent cycle are promoted to roots.
    - Duplicate ids keep the first occurrence only.

    Args:
        tasks: Tasks as fetched (already ordered upstream)

    Returns:
        TaskForest where every distinct task appears exactly once
    """
    nodes: List[TaskNode] = []
    by_id: Dict[str, int] = {}
    for task in tasks:
        if task.id in by_id:
            continue
        by_id[task.id] = len(nodes)
        nodes.append(TaskNode(task, len(nodes)))

    for node in nodes:
        parent_id = node.task.parent_task_id
        if parent_id and parent_id != node.id:
            node.parent = by_id.get(parent_id)

    _break_cycles(nodes)

    roots: List[int] = []
    for node in nodes:
        if node.parent is None:
            roots.append(node.index)
        else:
            nodes[node.parent].children.append(node.index)

    for node in nodes:
        node.children.sort(key=lambda i: _order_key(nodes[i]))
    roots.sort(key=lambda i: _order_key(nodes[i]))

    return TaskForest(nodes, roots)
