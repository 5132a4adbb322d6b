"""
Task data model - immutable records for Todoist REST v2 tasks and labels.

Todoist owns these records; recurdo only reads them and builds creation
requests from them.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta


def _parse_date(value: str) -> date:
    # Due dates arrive as "YYYY-MM-DD"; floating/fixed datetimes live in a separate field
    return date.fromisoformat(value[:10])


@dataclass(frozen=True)
class Due:
    """Due information attached to a task"""
    date: date
    is_recurring: bool = False
    string: str = ""
    datetime: Optional[str] = None
    timezone: Optional[str] = None
    lang: str = "en"

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]]) -> Optional["Due"]:
        if not data:
            return None
        return cls(
            date=_parse_date(data['date']),
            is_recurring=bool(data.get('is_recurring', False)),
            string=data.get('string') or "",
            datetime=data.get('datetime'),
            timezone=data.get('timezone'),
            lang=data.get('lang') or "en",
        )

    def has_time_of_day(self) -> bool:
        return self.datetime is not None


@dataclass(frozen=True)
class Deadline:
    """Deadline information attached to a task"""
    date: date
    lang: str = "en"

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]]) -> Optional["Deadline"]:
        if not data:
            return None
        return cls(date=_parse_date(data['date']), lang=data.get('lang') or "en")


@dataclass(frozen=True)
class Label:
    """A personal label as returned by GET /labels"""
    id: str
    name: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Label":
        return cls(id=str(data['id']), name=data['name'])

    @property
    def identity(self) -> str:
        """The value tasks carry in their `labels` list (REST v2 uses names)"""
        return self.name


@dataclass(frozen=True)
class NewTask:
    """Body of a POST /tasks creation request"""
    content: str
    project_id: str
    section_id: Optional[str] = None
    parent_id: Optional[str] = None
    order: Optional[int] = None
    priority: int = 1
    labels: Tuple[str, ...] = ()
    due_date: Optional[date] = None
    deadline_date: Optional[date] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "content": self.content,
            "project_id": self.project_id,
            "priority": self.priority,
            "labels": list(self.labels),
        }
        if self.section_id is not None:
            payload["section_id"] = self.section_id
        if self.parent_id is not None:
            payload["parent_id"] = self.parent_id
        if self.order is not None:
            payload["order"] = self.order
        if self.due_date is not None:
            payload["due_date"] = self.due_date.isoformat()
        if self.deadline_date is not None:
            payload["deadline_date"] = self.deadline_date.isoformat()
        return payload


@dataclass(frozen=True)
class Task:
    """An active task as returned by GET /tasks"""
    id: str
    project_id: str
    content: str
    section_id: Optional[str] = None
    labels: Tuple[str, ...] = ()
    parent_id: Optional[str] = None
    order: int = 0
    priority: int = 1
    due: Optional[Due] = None
    deadline: Optional[Deadline] = None
    url: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Task":
        """Build a Task from a Todoist REST task object"""
        parent_id = data.get('parent_id')
        section_id = data.get('section_id')
        return cls(
            id=str(data['id']),
            project_id=str(data['project_id']),
            content=data.get('content', ""),
            section_id=str(section_id) if section_id is not None else None,
            labels=tuple(data.get('labels') or ()),
            parent_id=str(parent_id) if parent_id is not None else None,
            order=int(data.get('order') or 0),
            priority=int(data.get('priority') or 1),
            due=Due.from_api(data.get('due')),
            deadline=Deadline.from_api(data.get('deadline')),
            url=data.get('url') or "",
        )

    def as_new_task(self, period: relativedelta, parent_id: Optional[str]) -> NewTask:
        """
        Build the creation request for a copy of this task shifted by `period`.

        Month and year steps clamp to the last day of the month, so
        2024-01-31 + 1 month is 2024-02-29.
        """
        return NewTask(
            content=self.content,
            project_id=self.project_id,
            section_id=self.section_id,
            parent_id=parent_id,
            order=self.order,
            priority=self.priority,
            labels=self.labels,
            due_date=self.due.date + period if self.due else None,
            deadline_date=self.deadline.date + period if self.deadline else None,
        )

    def labels_without(self, label: str) -> List[str]:
        return [name for name in self.labels if name != label]
