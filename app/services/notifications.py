"""Per-request collector for user-visible toast notifications."""

from typing import List, Literal

from pydantic import BaseModel

ToastType = Literal["success", "error", "info"]


class Toast(BaseModel):
    """A transient notification shown to the user."""

    message: str
    type: ToastType = "info"


class Notifier:
    """Collects toasts raised while handling one request.

    The view layer renders whatever was collected once the handler is done.
    """

    def __init__(self) -> None:
        self.toasts: List[Toast] = []

    def notify(self, message: str, type: ToastType = "info") -> None:
        self.toasts.append(Toast(message=message, type=type))

    def success(self, message: str) -> None:
        self.notify(message, "success")

    def error(self, message: str) -> None:
        self.notify(message, "error")

    def info(self, message: str) -> None:
        self.notify(message, "info")

    def has_errors(self) -> bool:
        return any(t.type == "error" for t in self.toasts)
