"""Customer and user lookups."""
from __future__ import annotations

import re
from datetime import datetime, timezone

from dryad.application.base import RepositoryService
from dryad.core.errors import DuplicateRecordError
from dryad.core.schema import Customer, Role, User


class CustomerService(RepositoryService):
    collection = "customers"

    async def get_customers(self) -> list[Customer]:
        await self._simulate_delay()
        return self._parse_all(Customer, self._repository.list(self.collection))

    async def get_customer_by_id(self, customer_id: str) -> Customer | None:
        await self._simulate_delay()
        customer = self._parse(Customer, self._repository.get(self.collection, customer_id))
        if customer is None:
            self._logger.warning("customer_not_found", customer_id=customer_id)
        return customer

    async def search_customers(self, query: str) -> list[Customer]:
        keyword = (query or "").strip().lower()
        if not keyword:
            return []
        await self._simulate_delay()

        def matches(row: dict) -> bool:
            fields = (row.get("name"), row.get("contact_person"), row.get("email"))
            return any(keyword in str(value).lower() for value in fields if value)

        return self._parse_all(Customer, self._repository.list(self.collection, matches))


ROLE_ID_PREFIXES: dict[Role, str] = {
    Role.TECH: "tech-",
    Role.ADMIN: "admin-",
    Role.OFFICE: "office-",
}


class UserService(RepositoryService):
    collection = "users"

    async def get_users(self) -> list[User]:
        await self._simulate_delay()
        return self._parse_all(User, self._repository.list(self.collection))

    async def get_user_by_id(self, user_id: str) -> User | None:
        await self._simulate_delay()
        user = self._parse(User, self._repository.get(self.collection, user_id))
        if user is None:
            self._logger.warning("user_not_found", user_id=user_id)
        return user

    async def get_users_by_role(self, role: Role | str) -> list[User]:
        wanted = Role(role)
        return [user for user in await self.get_users() if user.role == wanted]

    async def get_active_users(self) -> list[User]:
        return [user for user in await self.get_users() if user.is_active]

    async def get_technicians(self) -> list[User]:
        """Active technicians, including rows that still carry the legacy ``TECHNICIAN`` role."""

        return [user for user in await self.get_users() if user.role == Role.TECH and user.is_active]

    def _next_user_id(self, role: Role) -> str:
        prefix = ROLE_ID_PREFIXES.get(role, "user-")
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        numbers = [
            int(match.group(1))
            for row in self._repository.list(self.collection)
            if (match := pattern.match(str(row.get("id", ""))))
        ]
        return f"{prefix}{max(numbers, default=0) + 1:02d}"

    async def add_user(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        role: Role | str,
        phone_number: str | None = None,
        is_active: bool = True,
    ) -> User:
        await self._simulate_delay()
        lowered = email.strip().lower()
        existing = self._repository.list(self.collection, lambda row: str(row.get("email", "")).lower() == lowered)
        if existing:
            raise DuplicateRecordError(f"User with email {email} already exists")

        user = User(
            id=self._next_user_id(Role(role)),
            first_name=first_name,
            last_name=last_name,
            email=email,
            role=role,
            phone_number=phone_number,
            created_at=datetime.now(timezone.utc),
            is_active=is_active,
        )
        self._repository.insert(self.collection, self._dump(user))
        self._logger.info("user_added", user_id=user.id, role=user.role.value)
        return user
