"""Authorization policies.

A policy decides whether an authenticated principal may use an operation.
Static policies check the role carried in the token; ``MustBeOver18``
loads the caller's birth date through a ``UserAgeLookup`` so it can be
tested with a fake instead of a database.
"""

import logging
from collections.abc import Callable
from datetime import date
from enum import StrEnum
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.features.user.models import User, UserRole

from .principal import ApiKeyPrincipal, Principal

logger = logging.getLogger(__name__)


class PolicyDecision(StrEnum):
    ALLOW = "allow"
    DENY = "deny"


class UserAgeLookup(Protocol):
    """Port used by age-based policies."""

    async def get_birth_date(self, user_id: int) -> date | None: ...


class SqlUserAgeLookup:
    """``UserAgeLookup`` backed by the users table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_birth_date(self, user_id: int) -> date | None:
        result = await self.session.execute(select(User.birth_date).where(User.id == user_id))
        return result.scalar_one_or_none()


def calculate_age(birth_date: date, today: date) -> int:
    """Whole years between two dates, one less if this year's birthday has not come yet.

    Examples:
        >>> calculate_age(date(2000, 6, 15), date(2018, 6, 15))
        18
        >>> calculate_age(date(2000, 6, 15), date(2018, 6, 14))
        17

    """
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


class Policy(Protocol):
    name: str

    async def evaluate(self, principal: Principal) -> PolicyDecision: ...


class RequireRole:
    """Allow when the principal's role is one of ``roles``."""

    def __init__(self, *roles: str, name: str | None = None):
        self.roles = frozenset(str(role) for role in roles)
        self.name = name or "RequireRole(" + ",".join(sorted(self.roles)) + ")"

    async def evaluate(self, principal: Principal) -> PolicyDecision:
        return PolicyDecision.ALLOW if principal.role in self.roles else PolicyDecision.DENY


class MustBeOver18:
    """Allow when the caller is at least ``minimum_age`` years old today.

    Fails closed: a missing user or birth date is a denial, never an error.
    """

    name = "MustBeOver18"

    def __init__(self, lookup: UserAgeLookup, minimum_age: int = 18, today: Callable[[], date] = date.today):
        self.lookup = lookup
        self.minimum_age = minimum_age
        self.today = today

    async def evaluate(self, principal: Principal) -> PolicyDecision:
        if principal.user_id is None:
            return PolicyDecision.DENY

        birth_date = await self.lookup.get_birth_date(principal.user_id)
        if birth_date is None:
            logger.warning(f"Age policy denied: no birth date for user {principal.user_id}")
            return PolicyDecision.DENY

        if calculate_age(birth_date, self.today()) >= self.minimum_age:
            return PolicyDecision.ALLOW
        return PolicyDecision.DENY


async def evaluate_policy(policy: Policy | None, principal: Principal | ApiKeyPrincipal | None) -> PolicyDecision:
    """Apply a policy to the request principal.

    No policy means the operation is open to anyone, anonymous included.
    With a policy, anything but an authenticated user is denied.
    """
    if policy is None:
        return PolicyDecision.ALLOW
    if not isinstance(principal, Principal):
        return PolicyDecision.DENY
    return await policy.evaluate(principal)


class PolicyName(StrEnum):
    ADMIN_ONLY = "AdminOnly"
    USER_ONLY = "UserOnly"
    ADMIN_OR_USER = "AdminOrUser"
    MUST_BE_OVER_18 = "MustBeOver18"


def build_policy(name: PolicyName, lookup: UserAgeLookup | None = None) -> Policy:
    """Build one of the named application policies.

    Raises:
        ValueError: If an age policy is requested without a lookup

    """
    match name:
        case PolicyName.ADMIN_ONLY:
            return RequireRole(UserRole.ADMIN, name=name)
        case PolicyName.USER_ONLY:
            return RequireRole(UserRole.USER, name=name)
        case PolicyName.ADMIN_OR_USER:
            return RequireRole(UserRole.ADMIN, UserRole.USER, name=name)
        case PolicyName.MUST_BE_OVER_18:
            if lookup is None:
                raise ValueError("MustBeOver18 needs a UserAgeLookup")
            return MustBeOver18(lookup)
    raise ValueError(f"Unknown policy: {name}")
