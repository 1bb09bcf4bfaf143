"""
Trilium API client for telegram_worker.
Notes, events and reminders are read and written through the Trilium HTTP
API and the custom request handlers installed in the note tree.
"""
import json
import logging
from datetime import datetime
from typing import List, Optional
import requests
from pydantic import ValidationError
from ..config import RelayConfig
from ..models import BackendEvent, BackendTask
from .ical import CalendarEvent

logger = logging.getLogger(__name__)

class TriliumClient:
    def __init__(self, config: RelayConfig, token: Optional[str] = None) -> None:
        self.config = config
        self.token = token

    def _api_url(self, path: str) -> str:
        return f"http://{self.config.TRILIUM_HOST}{path}"

    def _headers(self) -> dict:
        return {"Authorization": self.token} if self.token else {}

    def login(self) -> bool:
        """Exchange username/password for an API token."""
        try:
            resp = requests.post(self._api_url("/api/login/token"), json={
                "username": self.config.TRILIUM_USER,
                "password": self.config.TRILIUM_PASSWORD,
            }, timeout=10)
            resp.raise_for_status()
            self.token = resp.json()["token"]
            return True
        except (requests.RequestException, ValueError, KeyError) as e:
            logger.error(f"Trilium login failed: {e}")
            return False

    def _get_json(self, path: str) -> Optional[list]:
        """GET a JSON list; None when the request or the decode fails."""
        try:
            resp = requests.get(self._api_url(path), headers=self._headers(), timeout=10)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch {path}: {e}")
            return None

        try:
            data = resp.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from {path}: {e}; payload: {resp.text}")
            return None
        if not isinstance(data, list):
            logger.error(f"Expected a list from {path}; payload: {resp.text}")
            return None
        return data

    def get_tasks(self) -> Optional[List[BackendTask]]:
        """Fetch tasks and reminders with their attributes."""
        data = self._get_json("/custom/task_alerts")
        if data is None:
            return None
        try:
            return [BackendTask.model_validate(item) for item in data]
        except ValidationError as e:
            logger.error(f"Unexpected task payload: {e}; payload: {json.dumps(data)}")
            return None

    def get_events(self) -> Optional[List[BackendEvent]]:
        data = self._get_json("/custom/event_alerts")
        if data is None:
            return None
        try:
            return [BackendEvent.model_validate(item) for item in data]
        except ValidationError as e:
            logger.error(f"Unexpected event payload: {e}; payload: {json.dumps(data)}")
            return None

    def _post(self, path: str, payload: dict) -> bool:
        try:
            resp = requests.post(self._api_url(path), json=payload, headers=self._headers(), timeout=10)
            resp.raise_for_status()
            return True
        except requests.RequestException as e:
            logger.error(f"Failed to post to {path}: {e}")
            return False

    def create_text_note(self, title: str, content: str) -> bool:
        return self._post("/api/clipper/notes", {
            "title": title,
            "content": content,
            "clipType": "note",
        })

    def create_event(self, event: CalendarEvent, file_name: str, file_data: str) -> bool:
        """Store one calendar event together with the .ics it came from."""
        return self._post("/custom/new_event", {
            "uid": event.uid,
            "name": event.summary,
            "summary": event.description,
            "summaryHtml": event.description_html or "",
            "location": event.location,
            "startTime": event.start.isoformat(),
            "endTime": event.end.isoformat(),
            "fileName": file_name,
            "fileData": file_data,
        })

    def create_reminder(self, when: datetime, task: str) -> bool:
        return self._post("/custom/new_reminder", {
            "time": when.isoformat(),
            "task": task,
        })
