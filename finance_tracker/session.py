"""
User Session

One signed-in user's view of the ledger: their identity, their store,
the mutation flow and the read-only queries, wired together.

DESIGN DECISION: There is no process-wide ledger.
Each session owns its own LedgerStore, built from constructor arguments,
so two users (or two tests) never share in-memory state.
"""

from datetime import datetime
from typing import Callable, Optional

from finance_tracker.audit import AuditLogger
from finance_tracker.config import AppSettings
from finance_tracker.ledger import LedgerStore
from finance_tracker.models.ledger import UserProfile
from finance_tracker.orchestrator import LedgerMutationFlow
from finance_tracker.queries import LedgerQueryExecutor, LedgerTotals
from finance_tracker.services.identity import IdentityProvider
from finance_tracker.services.notifications import NotificationSink
from finance_tracker.services.storage import (
    LedgerStorageInterface,
    ProfileStorageInterface,
)


class Session:
    """Everything the UI needs for one user."""

    def __init__(
        self,
        identity: IdentityProvider,
        ledger_storage: LedgerStorageInterface,
        notifier: Optional[NotificationSink] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.identity = identity
        self.store = LedgerStore(identity.current_user_id, ledger_storage)
        self.flow = LedgerMutationFlow(
            store=self.store,
            identity=identity,
            notifier=notifier,
            audit_logger=audit_logger,
            settings=settings,
            clock=clock,
        )
        self.queries = LedgerQueryExecutor(self.store)

    @classmethod
    async def open(
        cls,
        username: str,
        ledger_storage: LedgerStorageInterface,
        profile_storage: ProfileStorageInterface,
        create_if_missing: bool = False,
        **kwargs,
    ) -> Optional["Session"]:
        """
        Start a session for a username and load that user's ledger.

        Returns None for an unknown username unless create_if_missing is set,
        in which case an empty profile is registered first.
        """
        identity = await IdentityProvider.for_username(username, profile_storage)
        if identity is None:
            if not create_if_missing:
                return None
            profile = UserProfile(username=username)
            await profile_storage.save_profile(profile)
            identity = IdentityProvider(profile, profile_storage)

        session = cls(identity, ledger_storage, **kwargs)
        await session.store.load()
        return session

    @property
    def profile(self) -> UserProfile:
        return self.identity.profile

    def totals(self) -> LedgerTotals:
        """Dashboard totals, recomputed from the current records."""
        return self.queries.totals(self.identity.monthly_salary)

    async def refresh(self) -> None:
        """Pick up changes other users made (e.g. split approvals)."""
        await self.store.load()
