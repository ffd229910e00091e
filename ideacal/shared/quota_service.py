from __future__ import annotations

from datetime import datetime
from typing import Protocol

from ideacal.shared.idea_store import IdeaStore
from ideacal.shared.logging_utils import warning as log_warning
from ideacal.specs.common.enums import Tier


class QuotaService(Protocol):
    def get_tier(self, owner_id: str) -> Tier: ...

    def count_generated_since(self, owner_id: str, since: datetime) -> int: ...


class StoreQuotaService:
    """Reads tiers from user records and counts ideas from the idea store.

    Owners without a user record are treated as free tier.
    """

    def __init__(self, store: IdeaStore) -> None:
        self.store = store

    def get_tier(self, owner_id: str) -> Tier:
        user = self.store.get_user(owner_id)
        if user is None:
            return Tier.FREE
        try:
            return Tier(user.tier.lower())
        except ValueError:
            log_warning(None, "quota:unknown_tier", ownerId=owner_id, tier=user.tier)
            return Tier.FREE

    def count_generated_since(self, owner_id: str, since: datetime) -> int:
        return self.store.count_ideas_since(owner_id, since)
