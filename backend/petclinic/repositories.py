"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (demo users,
login accounts, owners). Repositories return SQLModel objects and
perform commits/refreshes where appropriate.
"""

from typing import Optional
from sqlmodel import Session, select
from . import models


class UsersRepository:
    """Persistence for the demo `Users` records."""
    def __init__(self, session: Session):
        self.session = session

    def save(self, users: models.Users) -> models.Users:
        """Persist `users` and return the managed instance.

        A record without an id is inserted as a new row on every call, so
        saving the same unsaved record twice issues two inserts. Failures
        (e.g. the unique `name` constraint) roll the session back and
        propagate to the caller.
        """
        record = models.Users(name=users.name, age=users.age) if not users.id else users
        try:
            self.session.add(record)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(record)
        return record


class AccountRepository:
    """CRUD operations for login `Account` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, account: models.Account) -> models.Account:
        """Persist a new account and return the managed instance."""
        self.session.add(account)
        self.session.commit()
        self.session.refresh(account)
        return account

    def get_by_username(self, username: str) -> Optional[models.Account]:
        """Return an `Account` by username or `None` if not found."""
        stmt = select(models.Account).where(models.Account.username == username)
        return self.session.exec(stmt).first()


class OwnerRepository:
    """Load and save `Owner` aggregates (owner, pets and visits)."""
    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, owner_id: int) -> Optional[models.Owner]:
        """Get an `Owner` by primary key; pets and visits load eagerly."""
        return self.session.get(models.Owner, owner_id)

    def save(self, owner: models.Owner) -> models.Owner:
        """Persist the whole aggregate; new pets and visits cascade from the owner."""
        self.session.add(owner)
        self.session.commit()
        self.session.refresh(owner)
        return owner
