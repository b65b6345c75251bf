"""
Identity / Profile Provider

Supplies the signed-in user's id and monthly salary, and resolves other
users by username for split expenses. Authentication itself happens
outside this package; a provider only exists once a user is known.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_tracker.models.ledger import UserProfile
from finance_tracker.services.storage.interface import ProfileStorageInterface


class IdentityProvider:
    """The current user's identity, backed by profile storage."""

    def __init__(
        self,
        profile: UserProfile,
        profile_storage: ProfileStorageInterface,
    ):
        self._profile = profile
        self._storage = profile_storage

    @classmethod
    async def for_username(
        cls,
        username: str,
        profile_storage: ProfileStorageInterface,
    ) -> Optional["IdentityProvider"]:
        """Build a provider for an existing user, or None if unknown."""
        profile = await profile_storage.get_profile_by_username(username)
        if profile is None:
            return None
        return cls(profile, profile_storage)

    @property
    def current_user_id(self) -> UUID:
        return self._profile.user_id

    @property
    def profile(self) -> UserProfile:
        return self._profile

    @property
    def monthly_salary(self) -> Decimal:
        return self._profile.monthly_salary or Decimal("0")

    async def resolve_user_by_username(self, username: str) -> Optional[UUID]:
        """Return the user id for a username, or None if nobody has it."""
        profile = await self._storage.get_profile_by_username(username)
        return profile.user_id if profile else None

    async def save_profile(self, profile: UserProfile) -> UserProfile:
        """
        Persist a new version of the current user's profile.

        The cached profile is replaced only after storage accepted it.
        """
        if profile.user_id != self._profile.user_id:
            raise ValueError("Cannot save another user's profile")
        await self._storage.save_profile(profile)
        self._profile = profile
        return profile
