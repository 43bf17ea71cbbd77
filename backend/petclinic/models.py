"""SQLModel data models.

This module defines the application's database tables using SQLModel.
`Owner` is the aggregate root: pets and their visits are persisted
through it, there is no separate visit table access.
"""

from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, date, timezone
from typing import List


class Users(SQLModel, table=True):
    """A demo user record.

    `name` carries a unique constraint; saving the same name twice is
    rejected by the store.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, nullable=False, unique=True)
    age: int


class Account(SQLModel, table=True):
    """A login account.

    Fields:
    - `username`: unique login name, stored in the session after login
    - `password_hash`: hashed password string (never store plaintext)
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Owner(SQLModel, table=True):
    """A clinic customer and the pets they own."""
    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str
    last_name: str = Field(index=True)
    address: Optional[str] = None
    city: Optional[str] = None
    telephone: Optional[str] = None
    pets: List['Pet'] = Relationship(
        back_populates='owner',
        sa_relationship_kwargs={'cascade': 'all, delete-orphan', 'lazy': 'selectin', 'order_by': 'Pet.name'},
    )

    def get_pet(self, pet_id: int) -> Optional['Pet']:
        """Return the owned pet with `pet_id` or `None`."""
        for pet in self.pets:
            if pet.id == pet_id:
                return pet
        return None

    def add_visit(self, pet_id: int, visit: 'Visit') -> None:
        """Attach `visit` to the owned pet identified by `pet_id`."""
        pet = self.get_pet(pet_id)
        if pet is None:
            raise ValueError(f"pet {pet_id} does not belong to owner {self.id}")
        pet.add_visit(visit)


class Pet(SQLModel, table=True):
    """A pet belonging to exactly one `Owner`."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    birth_date: Optional[date] = None
    owner_id: Optional[int] = Field(default=None, foreign_key='owner.id')
    owner: Optional[Owner] = Relationship(back_populates='pets')
    visits: List['Visit'] = Relationship(
        back_populates='pet',
        sa_relationship_kwargs={'cascade': 'all, delete-orphan', 'lazy': 'selectin', 'order_by': 'Visit.visit_date'},
    )

    def add_visit(self, visit: 'Visit') -> None:
        if not any(v is visit for v in self.visits):
            self.visits.append(visit)


class Visit(SQLModel, table=True):
    """A single veterinary visit recorded for a `Pet`."""
    id: Optional[int] = Field(default=None, primary_key=True)
    visit_date: date = Field(default_factory=date.today)
    description: Optional[str] = Field(default=None, max_length=255, nullable=False)
    pet_id: Optional[int] = Field(default=None, foreign_key='pet.id')
    pet: Optional[Pet] = Relationship(back_populates='visits')
