from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from .enums import LabelKind, DueSource

# =========================================================
# PYDANTIC SCHEMAS (backend payloads)
# =========================================================

class Attribute(BaseModel):
    type: str
    name: str
    value: Optional[str] = ""

    @property
    def kind(self) -> LabelKind:
        if self.type != "label":
            return LabelKind.other
        return LabelKind.classify(self.name)

class BackendTask(BaseModel):
    title: str = ""
    noteId: Optional[str] = None
    attributes: List[Attribute] = Field(default_factory=list)

    def labels(self) -> Dict[LabelKind, str]:
        """First value of every recognized label, keyed by kind."""
        found: Dict[LabelKind, str] = {}
        for attr in self.attributes:
            kind = attr.kind
            if kind is not LabelKind.other and kind not in found:
                found[kind] = attr.value or ""
        return found

class BackendEvent(BaseModel):
    name: str
    startTime: str

# =========================================================
# DERIVED
# =========================================================

@dataclass
class DueItem:
    title: str
    due: datetime
    is_reminder: bool
    source: DueSource

# =========================================================
# DUE TIME DERIVATION
# =========================================================

EVENT_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"

def parse_todo_time(value: str) -> time:
    """`HH:MM:SS` where every field may be missing or empty (-> 0)."""
    fields = [int(part) if part.strip() else 0 for part in value.split(":")[:3]]
    fields += [0] * (3 - len(fields))
    return time(*fields)

def task_due_item(task: BackendTask) -> Optional[DueItem]:
    """
    Resolve a task's due time, or None when it never alerts
    (no todoDate, done, or canceled).

    Raises ValueError when the date or time label can't be decoded.
    """
    labels = task.labels()
    if LabelKind.todo_date not in labels:
        return None
    if LabelKind.done_date in labels:
        return None
    if labels.get(LabelKind.canceled) == "true":
        return None

    due_date = date.fromisoformat(labels[LabelKind.todo_date])
    due_time = parse_todo_time(labels.get(LabelKind.todo_time, ""))
    return DueItem(
        title=task.title,
        due=datetime.combine(due_date, due_time),
        is_reminder=LabelKind.reminder in labels,
        source=DueSource.task,
    )

def event_due_item(event: BackendEvent) -> DueItem:
    """Raises ValueError when startTime isn't `YYYY-MM-DDTHH:MM:SS`."""
    return DueItem(
        title=event.name,
        due=datetime.strptime(event.startTime, EVENT_TIME_FORMAT),
        is_reminder=False,
        source=DueSource.event,
    )
