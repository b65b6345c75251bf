"""
Shared fixtures for the ledger tests.

Everything runs against in-memory storage with a fixed clock.
No real Google Sheets calls are made.
"""

from decimal import Decimal

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.config import AppSettings
from finance_tracker.models.ledger import UserProfile
from finance_tracker.services.identity import IdentityProvider
from finance_tracker.services.notifications import CollectingNotificationSink
from finance_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryProfileStorage,
)
from finance_tracker.session import Session

from helpers import FlakyLedgerStorage, fixed_clock


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        split_validation_days=7,
        default_saving_validation_days=1,
        max_amount_inr=1_000_000.0,
        old_date_warning_days=730,
    )


@pytest.fixture
def asha() -> UserProfile:
    return UserProfile(
        username="asha",
        name="Asha Rao",
        email="asha@example.com",
        monthly_salary=Decimal("50000"),
    )


@pytest.fixture
def ravi() -> UserProfile:
    return UserProfile(
        username="ravi",
        name="Ravi Kumar",
        email="ravi@example.com",
        monthly_salary=Decimal("40000"),
    )


@pytest.fixture
def ledger_storage() -> FlakyLedgerStorage:
    return FlakyLedgerStorage()


@pytest.fixture
def profile_storage(asha, ravi) -> InMemoryProfileStorage:
    return InMemoryProfileStorage([asha, ravi])


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def sink() -> CollectingNotificationSink:
    return CollectingNotificationSink()


@pytest.fixture
def make_session(ledger_storage, profile_storage, audit_storage, settings):
    """Build a session for a profile sharing the test's storage."""

    def _make(profile: UserProfile, sink=None) -> Session:
        return Session(
            IdentityProvider(profile, profile_storage),
            ledger_storage,
            notifier=sink or CollectingNotificationSink(),
            audit_logger=AuditLogger(audit_storage),
            settings=settings,
            clock=fixed_clock,
        )

    return _make


@pytest.fixture
def session(make_session, asha, sink) -> Session:
    return make_session(asha, sink)


@pytest.fixture
def ravi_session(make_session, ravi) -> Session:
    return make_session(ravi)
