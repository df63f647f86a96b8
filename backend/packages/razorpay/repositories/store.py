"""
Persistence handle passed explicitly to every webhook handler and service.
"""

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from packages.organizations.repositories.organization_repository import (
    OrganizationRepository,
)
from packages.razorpay.repositories.subscription_repository import SubscriptionRepository
from packages.users.repositories.user_repository import UserRepository


@dataclass
class BillingStore:
    """Repositories sharing one request-scoped session."""

    db_session: AsyncSession
    subscriptions: SubscriptionRepository = field(init=False)
    users: UserRepository = field(init=False)
    organizations: OrganizationRepository = field(init=False)

    def __post_init__(self):
        self.subscriptions = SubscriptionRepository(self.db_session)
        self.users = UserRepository(self.db_session)
        self.organizations = OrganizationRepository(self.db_session)

    def savepoint(self):
        """Nested transaction; a failure inside rolls back only its own writes."""
        return self.db_session.begin_nested()
