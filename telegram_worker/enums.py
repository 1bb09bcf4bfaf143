import enum
# =========================================================
# ENUMS
# =========================================================
class LabelKind(str, enum.Enum):
    todo_date = "todoDate"
    todo_time = "todoTime"
    done_date = "doneDate"
    reminder = "reminder"
    canceled = "canceled"
    other = "other"

    @classmethod
    def classify(cls, name: str) -> "LabelKind":
        try:
            kind = cls(name)
        except ValueError:
            return cls.other
        # "other" is a bucket, never a real label name
        return cls.other if kind is cls.other else kind

class DueSource(str, enum.Enum):
    task = "task"
    event = "event"

class CallbackAction(str, enum.Enum):
    add_10m = "10m_cb"
    add_1h = "1h_cb"
    add_1d = "1d_cb"
    add_1w = "1w_cb"
    save = "save_cb"
