"""Doctor application status machine.

The only place that knows which status an action leads to. A pair that is
not in ``TRANSITIONS`` is not allowed; ``next_status`` raises
``InvalidTransitionError`` for it.

    email_unconfirmed --confirm_email--> pending
    email_unconfirmed / pending / documentation_required / interview_scheduled
        --schedule_interview--> interview_scheduled
    pending / interview_scheduled / documentation_required
        --request_documentation--> documentation_required
        --approve--> active
    any pipeline status --reject--> rejected
    active --suspend--> suspended

``rejected`` and ``suspended`` have no outgoing transitions.
"""
from __future__ import annotations

from ..core.exceptions import InvalidTransitionError
from ..models.enums import ApplicationAction, DoctorStatus

_S = DoctorStatus
_A = ApplicationAction

_UNDER_REVIEW = (_S.PENDING, _S.INTERVIEW_SCHEDULED, _S.DOCUMENTATION_REQUIRED)

TRANSITIONS: dict[tuple[DoctorStatus, ApplicationAction], DoctorStatus] = {
    (_S.EMAIL_UNCONFIRMED, _A.CONFIRM_EMAIL): _S.PENDING,
    **{(s, _A.SCHEDULE_INTERVIEW): _S.INTERVIEW_SCHEDULED for s in (_S.EMAIL_UNCONFIRMED, *_UNDER_REVIEW)},
    **{(s, _A.REQUEST_DOCUMENTATION): _S.DOCUMENTATION_REQUIRED for s in _UNDER_REVIEW},
    **{(s, _A.APPROVE): _S.ACTIVE for s in _UNDER_REVIEW},
    **{(s, _A.REJECT): _S.REJECTED for s in (_S.EMAIL_UNCONFIRMED, *_UNDER_REVIEW)},
    (_S.ACTIVE, _A.SUSPEND): _S.SUSPENDED,
}

TERMINAL_STATUSES = frozenset({_S.REJECTED, _S.SUSPENDED})


def next_status(current: DoctorStatus, action: ApplicationAction) -> DoctorStatus:
    """Status reached by applying ``action`` in ``current``."""
    try:
        return TRANSITIONS[(current, action)]
    except KeyError:
        raise InvalidTransitionError(current.value, action.value) from None


def can_apply(current: DoctorStatus, action: ApplicationAction) -> bool:
    return (current, action) in TRANSITIONS


def allowed_actions(current: DoctorStatus) -> list[ApplicationAction]:
    """Actions available from ``current``, in declaration order."""
    return [action for action in ApplicationAction if (current, action) in TRANSITIONS]
