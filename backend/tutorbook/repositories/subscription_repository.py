# backend/tutorbook/repositories/subscription_repository.py
"""Subscription Repository: lookups for the anchor row of a series."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.subscription import Subscription
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SubscriptionRepository(BaseRepository[Subscription]):
    def __init__(self, db: Session):
        super().__init__(db, Subscription)
        self.logger = logging.getLogger(__name__)

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        return self.get_by_id(subscription_id)

