"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and form binding. Services are intentionally thin: they perform
validation, execute domain logic and persist aggregates via
repositories.
"""

from typing import Dict, Mapping, Optional
from fastapi import HTTPException
from passlib.context import CryptContext
from pydantic import ValidationError
from sqlmodel import Session
from . import models, repositories
from .schemas import VisitForm

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# never bound from submitted form data; identifiers are server generated
DISALLOWED_FIELDS = frozenset({"id"})


class AuthService:
    """Login account operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.account_repo = repositories.AccountRepository(session)

    def register(self, username: str, password: str) -> models.Account:
        """Create a new account with a hashed password.

        Returns the persisted `Account` instance.
        """
        hashed = PWD_CTX.hash(password)
        account = models.Account(username=username, password_hash=hashed)
        return self.account_repo.create(account)

    def ensure_account(self, username: str, password: str) -> models.Account:
        """Return the existing account for `username` or register it (idempotent)."""
        existing = self.account_repo.get_by_username(username)
        if existing:
            return existing
        return self.register(username, password)

    def authenticate(self, username: str, password: str) -> Optional[models.Account]:
        """Verify credentials and return the account on success.

        Returns `None` if authentication fails.
        """
        account = self.account_repo.get_by_username(username)
        if not account:
            return None
        if not PWD_CTX.verify(password, account.password_hash):
            return None
        return account


class VisitService:
    """Load the owner/pet pair for a visit and bind, validate and save it."""
    def __init__(self, session: Session):
        self.session = session
        self.owner_repo = repositories.OwnerRepository(session)

    def load_pet_with_visit(self, owner_id: int, pet_id: int) -> Dict[str, object]:
        """Resolve owner, then pet, then attach a fresh blank visit.

        Returns the view model `{'owner', 'pet', 'visit'}`. A new `Visit`
        is created on every call. Raises HTTPException(404) when the owner
        or the pet cannot be resolved.
        """
        owner = self.owner_repo.find_by_id(owner_id)
        if owner is None:
            raise HTTPException(status_code=404, detail=f"owner not found: {owner_id}")
        pet = owner.get_pet(pet_id)
        if pet is None:
            raise HTTPException(status_code=404, detail=f"pet not found: {pet_id}")
        visit = models.Visit()
        pet.add_visit(visit)
        return {'owner': owner, 'pet': pet, 'visit': visit}

    def bind_visit(self, visit: models.Visit, form: Mapping[str, str]) -> Dict[str, str]:
        """Copy submitted form fields onto `visit` and validate them.

        Fields in `DISALLOWED_FIELDS` are dropped before binding and only
        submitted fields overwrite the visit; a missing or blank `date`
        keeps the visit's own date. Returns a mapping of field name to
        error message; empty when valid. On errors the raw description is
        still copied so the form can be re-rendered with what the user
        typed.
        """
        data = {k: v for k, v in form.items() if k not in DISALLOWED_FIELDS}
        if not str(data.get('date', '')).strip():
            data.pop('date', None)
        try:
            parsed = VisitForm.model_validate(data)
        except ValidationError as exc:
            errors = {}
            for err in exc.errors():
                field = str(err['loc'][0]) if err['loc'] else '__all__'
                errors.setdefault(field, err['msg'])
            if 'description' in data:
                visit.description = data['description']
            return errors
        if parsed.visit_date is not None:
            visit.visit_date = parsed.visit_date
        visit.description = parsed.description
        return {}

    def save_visit(self, owner: models.Owner, pet_id: int, visit: models.Visit) -> models.Owner:
        """Attach `visit` to the owner's pet and persist the owner aggregate."""
        owner.add_visit(pet_id, visit)
        return self.owner_repo.save(owner)
