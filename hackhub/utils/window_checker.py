from datetime import datetime
from typing import Optional

from hackhub.errors import ClosedWindowError
from hackhub.models import Event
from hackhub.utils.time_utils import utcnow


def check_registration_window(event: Event, now: Optional[datetime] = None) -> None:
    """
    Checks that team registration is open for the event

    :param event: the event
    :param now: point in time to check, defaults to the current UTC time
    :raises: ClosedWindowError if registration is closed
    """
    if not event.is_registration_open(now or utcnow()):
        raise ClosedWindowError("Registration is not open for this event")


def check_submission_window(event: Event, now: Optional[datetime] = None) -> None:
    """
    Checks that submissions are accepted for the event

    :raises: ClosedWindowError if the submission deadline or the event end has passed
    """
    if not event.is_submission_open(now or utcnow()):
        raise ClosedWindowError("Submissions are closed for this event")


def check_judging_window(event: Event, is_admin: bool = False, now: Optional[datetime] = None) -> None:
    """
    Checks that judging is still open; admins are never blocked

    :raises: ClosedWindowError if the judging period has ended
    """
    if is_admin:
        return
    if not event.is_judging_open(now or utcnow()):
        raise ClosedWindowError("Judging period has ended")
