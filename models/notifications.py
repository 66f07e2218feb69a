"""Toast-style notifications surfaced to the UI layer."""

from enum import Enum

from pydantic import BaseModel


class Severity(str, Enum):
    """How the UI should style a notification."""
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Notification(BaseModel):
    """A message plus severity tag for transient display."""
    message: str
    severity: Severity = Severity.INFO
