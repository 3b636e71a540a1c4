"""
Microsoft To Do operations on top of ``GraphClient``.

This is the Remote Task Source used by the delta synchronizer, the
reconciler and the push/import commands.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple
from urllib.parse import quote

from ..core.models import RemoteTask, list_name_matches
from .graph import GraphClient, GraphRequest


LINKED_RESOURCE_APP_NAME = "Obsidian Microsoft To Do Sync"

# Fields the task PATCH endpoint rejects or that are server-managed
READ_ONLY_TASK_FIELDS = frozenset({
    "id",
    "linkedResources",
    "checklistItems",
    "createdDateTime",
    "lastModifiedDateTime",
    "bodyLastModifiedDateTime",
    "@removed",
})


def _segment(value: str) -> str:
    return quote(value, safe="")


def linked_resource_display_name(anchor_id: str) -> str:
    return f"Tracking Block Link: {anchor_id}"


def strip_read_only_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys the update operation does not accept."""
    return {
        key: value
        for key, value in fields.items()
        if key not in READ_ONLY_TASK_FIELDS and not key.startswith("@odata.")
    }


@dataclass
class DeltaPage:
    """One page of a delta query."""

    items: List[RemoteTask] = field(default_factory=list)
    next_link: Optional[str] = None
    delta_link: Optional[str] = None


class TodoApi:
    """Typed wrapper over the ``/me/todo`` Graph endpoints."""

    def __init__(self, client: GraphClient, logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------
    def _collect(self, request: GraphRequest) -> List[Dict[str, Any]]:
        values: List[Dict[str, Any]] = []
        while request is not None:
            payload = self.client.execute(request)
            values.extend(payload.get("value", []))
            next_link = payload.get("@odata.nextLink")
            request = GraphRequest.get(next_link) if next_link else None
        return values

    def list_task_lists(self) -> List[Dict[str, Any]]:
        """Return every task list as ``{"id", "displayName", ...}`` dicts."""
        return self._collect(GraphRequest.get("/me/todo/lists"))

    def get_list_id_by_name(self, name: str) -> Optional[str]:
        lists = self.list_task_lists()
        for entry in lists:
            if (entry.get("displayName") or "").strip().lower() == name.strip().lower():
                return entry.get("id")
        for entry in lists:
            if list_name_matches(entry.get("displayName") or "", name):
                return entry.get("id")
        return None

    def create_task_list(self, display_name: str) -> Dict[str, Any]:
        self.logger.info("Creating task list %r", display_name)
        return self.client.execute(
            GraphRequest.post("/me/todo/lists", {"displayName": display_name})
        )

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------
    def iter_tasks_delta(self, list_id: str, delta_token: str = "") -> Iterator[DeltaPage]:
        """Yield delta pages, following ``@odata.nextLink`` until the delta link."""
        if delta_token:
            request = GraphRequest.get(delta_token)
        else:
            request = GraphRequest.get(f"/me/todo/lists/{_segment(list_id)}/tasks/delta")

        while request is not None:
            payload = self.client.execute(request)
            page = DeltaPage(
                items=[RemoteTask.from_dict(item) for item in payload.get("value", [])],
                next_link=payload.get("@odata.nextLink"),
                delta_link=payload.get("@odata.deltaLink"),
            )
            yield page
            request = GraphRequest.get(page.next_link) if page.next_link else None

    def get_tasks_delta(self, list_id: str, delta_token: str = "") -> Tuple[List[RemoteTask], str]:
        """Fetch all delta pages; returns the items and the new delta link."""
        items: List[RemoteTask] = []
        delta_link = delta_token
        for page in self.iter_tasks_delta(list_id, delta_token):
            items.extend(page.items)
            if page.delta_link:
                delta_link = page.delta_link
        return items, delta_link

    def create_task(self, list_id: str, fields: Dict[str, Any]) -> RemoteTask:
        body = strip_read_only_fields(fields)
        body.setdefault("body", {"content": "", "contentType": "text"})
        payload = self.client.execute(
            GraphRequest.post(f"/me/todo/lists/{_segment(list_id)}/tasks", body)
        )
        task = RemoteTask.from_dict(payload)
        self.logger.debug("Created task %s in list %s", task.id, list_id)
        return task

    def update_task(self, list_id: str, task_id: str, fields: Dict[str, Any]) -> RemoteTask:
        payload = self.client.execute(
            GraphRequest.patch(
                f"/me/todo/lists/{_segment(list_id)}/tasks/{_segment(task_id)}",
                strip_read_only_fields(fields),
            )
        )
        self.logger.debug("Updated task %s in list %s", task_id, list_id)
        return RemoteTask.from_dict(payload)

    # ------------------------------------------------------------------
    # Checklist items
    # ------------------------------------------------------------------
    def _checklist_endpoint(self, list_id: str, task_id: str) -> str:
        return f"/me/todo/lists/{_segment(list_id)}/tasks/{_segment(task_id)}/checklistItems"

    def list_checklist_items(self, list_id: str, task_id: str) -> List[Dict[str, Any]]:
        return self._collect(GraphRequest.get(self._checklist_endpoint(list_id, task_id)))

    def create_checklist_item(self, list_id: str, task_id: str, display_name: str,
                              is_checked: bool = False) -> Dict[str, Any]:
        return self.client.execute(GraphRequest.post(
            self._checklist_endpoint(list_id, task_id),
            {"displayName": display_name, "isChecked": is_checked},
        ))

    def update_checklist_item(self, list_id: str, task_id: str, item_id: str,
                              fields: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.execute(GraphRequest.patch(
            f"{self._checklist_endpoint(list_id, task_id)}/{_segment(item_id)}",
            fields,
        ))

    # ------------------------------------------------------------------
    # Linked resources
    # ------------------------------------------------------------------
    def _linked_endpoint(self, list_id: str, task_id: str) -> str:
        return f"/me/todo/lists/{_segment(list_id)}/tasks/{_segment(task_id)}/linkedResources"

    def list_linked_resources(self, list_id: str, task_id: str) -> List[Dict[str, Any]]:
        return self._collect(GraphRequest.get(self._linked_endpoint(list_id, task_id)))

    def create_linked_resource(self, list_id: str, task_id: str, external_id: str,
                               web_url: str) -> Dict[str, Any]:
        return self.client.execute(GraphRequest.post(
            self._linked_endpoint(list_id, task_id),
            {
                "webUrl": web_url,
                "applicationName": LINKED_RESOURCE_APP_NAME,
                "externalId": external_id,
                "displayName": linked_resource_display_name(external_id),
            },
        ))

    def update_linked_resource(self, list_id: str, task_id: str, resource_id: str,
                               external_id: str, web_url: str) -> Dict[str, Any]:
        return self.client.execute(GraphRequest.patch(
            f"{self._linked_endpoint(list_id, task_id)}/{_segment(resource_id)}",
            {
                "webUrl": web_url,
                "externalId": external_id,
                "displayName": linked_resource_display_name(external_id),
            },
        ))
