# scrambler/credentials.py

import logging
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from scrambler.entities import User
from scrambler.errors import CredentialStoreError

logger = logging.getLogger("scrambler_backend")

# verified against when the identifier is unknown
_DUMMY_SECRET = "scrambler-unknown-identifier"


class IdentifierTakenError(Exception):
    pass


class CredentialStore:
    """
    User records and secret digests (Argon2id via argon2-cffi).

    Database failures surface as CredentialStoreError; a unique-constraint
    hit on `identifier` is IdentifierTakenError.
    """

    def __init__(self, session_factory: sessionmaker, hasher: PasswordHasher | None = None):
        self.SessionFactory = session_factory
        self.hasher = hasher or PasswordHasher()
        self._dummy_digest: str | None = None

    def hash_secret(self, secret: str) -> str:
        return self.hasher.hash(secret)

    def verify_digest(self, secret: str, digest: str) -> bool:
        try:
            return self.hasher.verify(digest, secret)
        except (VerificationError, InvalidHashError):
            return False

    def reject_unknown(self, secret: str) -> bool:
        """
        Spend one verification on a dummy digest and return False, so a login
        for an unknown identifier takes as long as a wrong secret.
        """
        if self._dummy_digest is None:
            self._dummy_digest = self.hash_secret(_DUMMY_SECRET)
        self.verify_digest(secret, self._dummy_digest)
        return False

    def find_user_by_identifier(self, identifier: str) -> Optional[User]:
        session: Session = self.SessionFactory()
        try:
            return (
                session.query(User)
                    .filter(User.identifier == identifier)
                    .one_or_none()
            )
        except SQLAlchemyError as e:
            raise CredentialStoreError(f"Could not look up user: {e}") from e
        finally:
            session.close()

    def create_user(self, identifier: str, secret_digest: str) -> str:
        """
        Insert a user row and return its id. Raises IdentifierTakenError when
        the unique constraint on `identifier` fires.
        """
        session: Session = self.SessionFactory()
        try:
            user = User(identifier=identifier, secret_digest=secret_digest)
            session.add(user)
            session.commit()
            return user.id
        except IntegrityError as e:
            session.rollback()
            raise IdentifierTakenError(identifier) from e
        except SQLAlchemyError as e:
            session.rollback()
            raise CredentialStoreError(f"Could not create user: {e}") from e
        finally:
            session.close()

    def list_identifiers(self) -> list[str]:
        session: Session = self.SessionFactory()
        try:
            rows = session.query(User.identifier).order_by(User.created_at.asc()).all()
            return [identifier for (identifier,) in rows]
        except SQLAlchemyError as e:
            raise CredentialStoreError(f"Could not list users: {e}") from e
        finally:
            session.close()
