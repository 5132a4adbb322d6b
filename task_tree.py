"""
Forest builder - turns Todoist's flat task list into parent-linked trees.

Nodes own their children and keep no reference to their parent; the parent of
a node is always recoverable from ``node.task.parent_id``.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from task_models import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeNode:
    task: Task
    children: Tuple["TreeNode", ...] = ()

    def with_descendants(self) -> List["TreeNode"]:
        """This node followed by all of its descendants, pre-order"""
        nodes = [self]
        nodes.extend(self.descendants())
        return nodes

    def descendants(self) -> List["TreeNode"]:
        """All strict descendants, pre-order"""
        nodes = []
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            nodes.append(node)
            stack.extend(reversed(node.children))
        return nodes

    def __repr__(self):
        return f"TreeNode(id={self.task.id!r}, content={self.task.content!r}, children={len(self.children)})"


def group_by_parent(tasks: Iterable[Task]) -> Dict[Optional[str], List[Task]]:
    """Group tasks by parent id with each group sorted by sibling order"""
    groups = defaultdict(list)
    for task in tasks:
        groups[task.parent_id].append(task)
    # sorted() is stable, so equal orders keep their input order
    return {parent_id: sorted(group, key=lambda t: t.order) for parent_id, group in groups.items()}


def build_forest(tasks: Iterable[Task]) -> List[TreeNode]:
    """
    Build one TreeNode per root task (no parent), children attached recursively.

    Tasks that cannot be reached from a root - an orphan whose parent is not in
    the snapshot, or a task on a parent cycle - are left out of the forest.
    """
    groups = group_by_parent(tasks)
    visited: Set[str] = set()

    def treeify(task: Task) -> TreeNode:
        visited.add(task.id)
        children = tuple(
            treeify(child) for child in groups.get(task.id, [])
            if child.id not in visited
        )
        return TreeNode(task=task, children=children)

    return [treeify(task) for task in groups.get(None, [])]


def flatten(forest: Iterable[TreeNode]) -> List[TreeNode]:
    """Every node of the forest in pre-order"""
    nodes = []
    for root in forest:
        nodes.extend(root.with_descendants())
    return nodes


def unreachable_tasks(tasks: Iterable[Task], nodes: Iterable[TreeNode]) -> List[Task]:
    """Tasks that did not make it into the forest"""
    seen = {node.task.id for node in nodes}
    return [task for task in tasks if task.id not in seen]


def build_task_tree(tasks: List[Task]) -> List[TreeNode]:
    """Build the forest and return it flattened in pre-order"""
    nodes = flatten(build_forest(tasks))
    for task in unreachable_tasks(tasks, nodes):
        logger.warning(
            f"Task {task.id} | Skipping: parent {task.parent_id} not reachable from a root task"
        )
    return nodes
