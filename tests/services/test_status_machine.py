"""Tests for the doctor application status machine."""

from __future__ import annotations

import itertools

import pytest

from src.app.core.exceptions import InvalidTransitionError
from src.app.models.enums import ApplicationAction as A
from src.app.models.enums import DoctorStatus as S
from src.app.services.status_machine import (
    TERMINAL_STATUSES,
    allowed_actions,
    can_apply,
    next_status,
)

EXPECTED = {
    (S.EMAIL_UNCONFIRMED, A.CONFIRM_EMAIL): S.PENDING,
    (S.EMAIL_UNCONFIRMED, A.SCHEDULE_INTERVIEW): S.INTERVIEW_SCHEDULED,
    (S.EMAIL_UNCONFIRMED, A.REJECT): S.REJECTED,
    (S.PENDING, A.SCHEDULE_INTERVIEW): S.INTERVIEW_SCHEDULED,
    (S.PENDING, A.REQUEST_DOCUMENTATION): S.DOCUMENTATION_REQUIRED,
    (S.PENDING, A.APPROVE): S.ACTIVE,
    (S.PENDING, A.REJECT): S.REJECTED,
    (S.INTERVIEW_SCHEDULED, A.SCHEDULE_INTERVIEW): S.INTERVIEW_SCHEDULED,
    (S.INTERVIEW_SCHEDULED, A.REQUEST_DOCUMENTATION): S.DOCUMENTATION_REQUIRED,
    (S.INTERVIEW_SCHEDULED, A.APPROVE): S.ACTIVE,
    (S.INTERVIEW_SCHEDULED, A.REJECT): S.REJECTED,
    (S.DOCUMENTATION_REQUIRED, A.SCHEDULE_INTERVIEW): S.INTERVIEW_SCHEDULED,
    (S.DOCUMENTATION_REQUIRED, A.REQUEST_DOCUMENTATION): S.DOCUMENTATION_REQUIRED,
    (S.DOCUMENTATION_REQUIRED, A.APPROVE): S.ACTIVE,
    (S.DOCUMENTATION_REQUIRED, A.REJECT): S.REJECTED,
    (S.ACTIVE, A.SUSPEND): S.SUSPENDED,
}


@pytest.mark.parametrize(("pair", "expected"), EXPECTED.items())
def test_defined_transitions(pair, expected):
    current, action = pair
    assert next_status(current, action) is expected
    assert can_apply(current, action)


@pytest.mark.parametrize(
    "pair",
    [pair for pair in itertools.product(S, A) if pair not in EXPECTED],
)
def test_undefined_transitions_raise(pair):
    current, action = pair
    assert not can_apply(current, action)
    with pytest.raises(InvalidTransitionError) as exc_info:
        next_status(current, action)
    assert exc_info.value.details == {"current_status": current.value, "action": action.value}


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
def test_terminal_statuses_have_no_way_out(status):
    assert allowed_actions(status) == []


def test_active_can_only_be_suspended():
    assert allowed_actions(S.ACTIVE) == [A.SUSPEND]


def test_approval_requires_confirmed_email():
    assert not can_apply(S.EMAIL_UNCONFIRMED, A.APPROVE)
