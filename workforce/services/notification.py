from typing import Protocol
from sqlalchemy.orm import Session
from workforce.models.notification import Notification
from workforce.models.leave_request import LeaveRequest


class LeaveEventNotifier(Protocol):
    """Consumer of leave workflow events (submitted, approved, denied, cancelled)."""

    def leave_event(self, event: str, leave: LeaveRequest) -> None:
        ...


# event -> (title, notification type)
LEAVE_EVENTS = {
    "submitted": ("Leave request submitted", "info"),
    "approved": ("Leave request approved", "success"),
    "denied": ("Leave request denied", "error"),
    "cancelled": ("Leave request cancelled", "warning"),
}


class NotificationService:
    """Default notifier: persists one in-app notification per workflow event."""

    def __init__(self, db: Session):
        self.db = db

    def leave_event(self, event: str, leave: LeaveRequest) -> None:
        title, type_ = LEAVE_EVENTS[event]
        message = (
            f"{leave.leave_type} leave {leave.start_date.isoformat()} to {leave.end_date.isoformat()} "
            f"({leave.days_requested} day(s)) is now {leave.status}."
        )
        if event == "denied" and leave.review_notes:
            message += f" Reason: {leave.review_notes}"
        self.create_notification(leave.employee_id, f"leave.{event}", title, message, type_)

    def create_notification(
        self,
        employee_id: int,
        event: str,
        title: str,
        message: str,
        type: str = "info",
    ) -> Notification:
        """
        Internal utility for creating notifications.
        Joins the caller's transaction; the caller commits.
        """
        notification = Notification(
            employee_id=employee_id,
            event=event,
            title=title,
            message=message,
            type=type,
        )
        self.db.add(notification)
        self.db.flush()
        return notification
