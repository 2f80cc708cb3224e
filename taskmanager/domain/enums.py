from enum import Enum

from taskmanager.domain.errors import TaskValidationError


class _ParseableEnum(str, Enum):
    """Enum tekstowy z jawnym parsowaniem wartości z zewnątrz (HTTP, CLI)."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        field = cls.__name__.removeprefix("Task").lower()
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise TaskValidationError(field, f"Invalid {field} '{value}', expected one of: {allowed}")

    def __str__(self):
        return self.value


class TaskStatus(_ParseableEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(_ParseableEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
