"""
RecurrencePipeline - selection, validation, cloning and label stripping

One pass works on a fresh snapshot of labels and tasks:
1. Decode recur_ labels into RecurrenceRules
2. Build the task forest
3. Validate every labeled subtree, then keep those due before the cutoff
4. Clone each kept subtree one period later, then strip the label from the original

The pipeline repeats passes until one of them finds nothing to do.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from recur_labels import RecurrenceRule, load_recurrence_rules
from recurdo_errors import ConvergenceError, RecurrenceValidationError
from task_logging import log_task_action
from task_models import NewTask, Task
from task_tree import TreeNode, build_task_tree

Candidate = Tuple[TreeNode, RecurrenceRule]


class ValidationErrorKind(str, Enum):
    MULTIPLE_LABELS = "multiple_labels"
    NO_DUE_DATE = "no_due_date"
    NESTED_LABEL = "nested_label"
    RECURRING_DUE = "recurring_due"
    TIME_OF_DAY_DUE = "time_of_day_due"


@dataclass
class ValidationResult:
    """Outcome of checking one labeled subtree"""
    task_id: str
    task_content: str
    rule: Optional[RecurrenceRule] = None
    success: bool = True
    error: Optional[str] = None
    error_kind: Optional[ValidationErrorKind] = None

    @classmethod
    def failure(cls, node: TreeNode, kind: ValidationErrorKind, message: str) -> "ValidationResult":
        return cls(
            task_id=node.task.id,
            task_content=node.task.content,
            success=False,
            error=message,
            error_kind=kind,
        )


@dataclass
class PassResult:
    """What a single pass selected and changed"""
    pass_number: int
    candidates: List[Candidate] = field(default_factory=list)
    created_tasks: List[Task] = field(default_factory=list)
    stripped_task_ids: List[str] = field(default_factory=list)
    planned_tasks: List[Tuple[int, NewTask]] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.candidates)


def _describe(node: TreeNode) -> str:
    task = node.task
    return f"{task.content!r} (id={task.id}, {task.url or 'no url'})"


def matching_rules(task: Task, rules: Dict[str, RecurrenceRule]) -> List[RecurrenceRule]:
    return [rules[label] for label in task.labels if label in rules]


def validate_candidate(node: TreeNode, rules: Dict[str, RecurrenceRule]) -> Optional[ValidationResult]:
    """
    Check one node against the recurrence rules.

    Returns None when the node carries no recurrence label, otherwise a
    ValidationResult that either holds the node's rule or names the first
    problem found.
    """
    matches = matching_rules(node.task, rules)
    if not matches:
        return None

    if len(matches) > 1:
        names = ", ".join(str(rule) for rule in matches)
        return ValidationResult.failure(
            node, ValidationErrorKind.MULTIPLE_LABELS,
            f"Task has multiple recur labels ({names}): {_describe(node)}"
        )

    if node.task.due is None:
        return ValidationResult.failure(
            node, ValidationErrorKind.NO_DUE_DATE,
            f"Labeled task has no due date: {_describe(node)}"
        )

    for descendant in node.descendants():
        if matching_rules(descendant.task, rules):
            return ValidationResult.failure(
                descendant, ValidationErrorKind.NESTED_LABEL,
                f"Task with recur label nested under another one: {_describe(descendant)} under {_describe(node)}"
            )

    for member in node.with_descendants():
        due = member.task.due
        if due is None:
            continue
        if due.is_recurring:
            return ValidationResult.failure(
                member, ValidationErrorKind.RECURRING_DUE,
                f"Task under labeled task cannot be recurring: {_describe(member)}"
            )
        if due.has_time_of_day():
            return ValidationResult.failure(
                member, ValidationErrorKind.TIME_OF_DAY_DUE,
                f"Task under labeled task cannot have a specific time of day: {_describe(member)}"
            )

    return ValidationResult(task_id=node.task.id, task_content=node.task.content, rule=matches[0])


def select_candidates(nodes: List[TreeNode],
                      rules: Dict[str, RecurrenceRule],
                      cutoff: date) -> List[Candidate]:
    """
    Validate every labeled node, then return those due strictly before cutoff.

    Validation covers all labeled nodes regardless of their due date, so one
    bad task anywhere stops the pass before any remote change is made.
    """
    validated = []
    for node in nodes:
        result = validate_candidate(node, rules)
        if result is None:
            continue
        if not result.success:
            raise RecurrenceValidationError(result)
        validated.append((node, result.rule))

    return [(node, rule) for node, rule in validated if node.task.due.date < cutoff]


def plan_subtree(node: TreeNode, rule: RecurrenceRule, depth: int = 0) -> List[Tuple[int, NewTask]]:
    """Creation requests clone_subtree would issue, with their depth, pre-order"""
    # Parent ids of copies are unknown until creation; keep the original parent for the root only
    parent_id = node.task.parent_id if depth == 0 else None
    planned = [(depth, node.task.as_new_task(rule.period, parent_id))]
    for child in node.children:
        planned.extend(plan_subtree(child, rule, depth + 1))
    return planned


def clone_subtree(client,
                  node: TreeNode,
                  rule: RecurrenceRule,
                  override_parent_id: Optional[str] = None,
                  logger: Optional[logging.Logger] = None) -> List[Task]:
    """
    Recreate `node` and its descendants one period later.

    Each copy is created before its children so the children can point at the
    copy's new id. Top-level calls keep the original parent.
    Returns the created tasks in creation (pre-order) order.
    """
    parent_id = override_parent_id if override_parent_id is not None else node.task.parent_id
    copied = client.create_task(node.task.as_new_task(rule.period, parent_id))
    if logger:
        log_task_action(logger, copied.id, copied.content, "CREATED",
                        source_task=node.task.id, parent=parent_id,
                        due=copied.due.date if copied.due else None)

    created = [copied]
    for child in node.children:
        created.extend(clone_subtree(client, child, rule, copied.id, logger))
    return created


def strip_recurrence_label(client,
                           node: TreeNode,
                           rule: RecurrenceRule,
                           logger: Optional[logging.Logger] = None) -> List[str]:
    """Remove the recurrence label from the original subtree root"""
    remaining = node.task.labels_without(rule.label)
    client.set_labels(node.task.id, remaining)
    if logger:
        log_task_action(logger, node.task.id, node.task.content, "LABEL_REMOVED",
                        labels=remaining, rule=str(rule))
    return remaining


class RecurrencePipeline:
    """
    Runs recurrence passes against a Todoist client until nothing is left
    due before the cutoff.
    """

    def __init__(self,
                 client,
                 cutoff: date,
                 logger: Optional[logging.Logger] = None,
                 dry_run: bool = False,
                 max_passes: Optional[int] = None):
        """
        Initialize the recurrence pipeline.

        Args:
            client: Object exposing list_labels, list_tasks, create_task, set_labels
            cutoff: Candidates due strictly before this date are processed
            logger: Logger instance
            dry_run: If True, run one pass that only plans creations
            max_passes: Optional ceiling on the number of passes
        """
        self.client = client
        self.cutoff = cutoff
        self.logger = logger or logging.getLogger(__name__)
        self.dry_run = dry_run
        self.max_passes = max_passes

        self.stats = {
            'passes': 0,
            'candidates_processed': 0,
            'tasks_created': 0,
            'labels_stripped': 0,
        }
        self.results: List[PassResult] = []

    def run_pass(self, check_only: bool = False) -> PassResult:
        """
        Run one full selection -> validation -> clone -> strip pass.

        With check_only the pass selects and validates but changes nothing
        and processes nothing.
        """
        self.stats['passes'] += 1
        result = PassResult(pass_number=self.stats['passes'])

        rules = load_recurrence_rules(self.client.list_labels())
        nodes = build_task_tree(self.client.list_tasks())
        self.logger.debug(
            f"Pass {result.pass_number}: {len(rules)} recur labels, {len(nodes)} tasks"
        )

        result.candidates = select_candidates(nodes, rules, self.cutoff)
        if check_only:
            self.results.append(result)
            return result

        for node, rule in result.candidates:
            self.logger.info(f"Processing {node.task.content} @ {node.task.due.date} ({node.task.url})")
            if self.dry_run:
                result.planned_tasks.extend(plan_subtree(node, rule))
                continue
            self._process_candidate(node, rule, result)

        self.stats['candidates_processed'] += result.processed
        self.results.append(result)
        return result

    def _process_candidate(self, node: TreeNode, rule: RecurrenceRule, result: PassResult):
        created = clone_subtree(self.client, node, rule, logger=self.logger)
        result.created_tasks.extend(created)
        self.stats['tasks_created'] += len(created)

        # Only after the whole subtree exists; a crash before this line leaves the
        # label in place and the candidate is picked up again next run
        strip_recurrence_label(self.client, node, rule, logger=self.logger)
        result.stripped_task_ids.append(node.task.id)
        self.stats['labels_stripped'] += 1

    def run(self) -> int:
        """
        Repeat passes until one processes no candidates.

        max_passes counts passes that change something; once it is used up,
        one more read-only pass decides between success and ConvergenceError.

        Returns the total number of candidates processed across all passes.
        """
        working_passes = 0
        while True:
            limit_reached = self.max_passes is not None and working_passes >= self.max_passes
            result = self.run_pass(check_only=limit_reached)
            if result.processed == 0 or self.dry_run:
                break
            if limit_reached:
                raise ConvergenceError(
                    f"Still {result.processed} tasks due before cutoff after {working_passes} passes; "
                    f"check for labels with very short periods"
                )
            working_passes += 1
        return self.stats['candidates_processed']


class PipelineFactory:
    """Factory class for creating configured RecurrencePipeline instances"""

    @staticmethod
    def create_from_config(client,
                           config: Any,
                           logger: Optional[logging.Logger] = None) -> RecurrencePipeline:
        """
        Create a RecurrencePipeline from a RecurdoConfig (or any object with
        the same attributes).
        """
        return RecurrencePipeline(
            client=client,
            cutoff=config.cutoff_date(),
            logger=logger,
            dry_run=getattr(config, 'dry_run', False),
            max_passes=getattr(config, 'max_passes', None),
        )
