"""
Todoist REST transport - the four remote operations recurdo needs.

Every call raises requests.HTTPError on a non-2xx response. Nothing here
retries; re-running the whole program is the recovery path.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from task_models import Label, NewTask, Task

TODOIST_API = "https://api.todoist.com/rest/v2"


class TodoistClient:
    """Thin wrapper around a requests.Session authenticated with a Todoist API token"""

    def __init__(self,
                 api_token: str,
                 api_url: str = TODOIST_API,
                 session: Optional[requests.Session] = None,
                 timeout: float = 30,
                 logger: Optional[logging.Logger] = None):
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_token.strip()}",
            "Content-Type": "application/json",
        })

    def _url(self, *components: str) -> str:
        return "/".join([self.api_url, *components])

    def _get_all(self, *components: str) -> List[Dict[str, Any]]:
        """GET a collection, following next_cursor when the API paginates"""
        items = []
        params = {}
        while True:
            r = self.session.get(self._url(*components), params=params, timeout=self.timeout)
            r.raise_for_status()
            body = r.json()
            if isinstance(body, list):
                return items + body
            items.extend(body.get('results', []))
            cursor = body.get('next_cursor')
            if not cursor:
                return items
            params = {"cursor": cursor}

    def list_labels(self) -> List[Label]:
        labels = [Label.from_api(item) for item in self._get_all("labels")]
        self.logger.debug(f"Fetched {len(labels)} labels")
        return labels

    def list_tasks(self) -> List[Task]:
        tasks = [Task.from_api(item) for item in self._get_all("tasks")]
        self.logger.debug(f"Fetched {len(tasks)} tasks")
        return tasks

    def create_task(self, new_task: NewTask) -> Task:
        """Create a task and return it with its Todoist-assigned id"""
        r = self.session.post(self._url("tasks"), json=new_task.to_payload(), timeout=self.timeout)
        r.raise_for_status()
        return Task.from_api(r.json())

    def set_labels(self, task_id: str, labels: Iterable[str]) -> None:
        r = self.session.post(self._url("tasks", task_id), json={"labels": list(labels)}, timeout=self.timeout)
        r.raise_for_status()
