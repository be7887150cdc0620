# scrambler/auth_gateway.py

import logging
from typing import Optional

from scrambler.credentials import CredentialStore, IdentifierTakenError
from scrambler.outcomes import AuthOutcome, AuthStatus
from scrambler.session_store import SessionStore

logger = logging.getLogger("scrambler_backend")


class AuthenticationGateway:
    """
    Consumes a session's two buffers to sign up or log in.

    - Both buffers must be non-empty, otherwise MISSING_CREDENTIALS and the
      buffers are left as they are.
    - Every other attempt clears both buffers, whatever the result. A store
      failure raises instead and leaves the buffers alone.
    - "No such identifier" and "wrong secret" are the same INVALID_CREDENTIALS.
    """

    def __init__(self, store: SessionStore, credentials: CredentialStore):
        self.store = store
        self.credentials = credentials

    def authenticate(self, session_id: Optional[str], is_signup: bool) -> AuthOutcome:
        state = self.store.get_or_create(session_id)
        identifier = state.identifier_buffer
        secret = state.secret_buffer

        if not identifier or not secret:
            return AuthOutcome(AuthStatus.MISSING_CREDENTIALS)

        # a store failure propagates before the buffers are touched
        if is_signup:
            outcome = self._signup(identifier, secret)
        else:
            outcome = self._login(identifier, secret)
        self.store.save(state.cleared())

        logger.info(f"[auth] session={state.id} signup={is_signup} outcome={outcome.status.value}")
        return outcome

    def _signup(self, identifier: str, secret: str) -> AuthOutcome:
        if self.credentials.find_user_by_identifier(identifier) is not None:
            return AuthOutcome(AuthStatus.IDENTIFIER_TAKEN)

        digest = self.credentials.hash_secret(secret)
        try:
            self.credentials.create_user(identifier, digest)
        except IdentifierTakenError:
            # lost a race with a concurrent signup for the same identifier
            return AuthOutcome(AuthStatus.IDENTIFIER_TAKEN)
        return AuthOutcome(AuthStatus.CREATED)

    def _login(self, identifier: str, secret: str) -> AuthOutcome:
        user = self.credentials.find_user_by_identifier(identifier)
        if user is None:
            self.credentials.reject_unknown(secret)
            return AuthOutcome(AuthStatus.INVALID_CREDENTIALS)
        if not self.credentials.verify_digest(secret, user.secret_digest):
            return AuthOutcome(AuthStatus.INVALID_CREDENTIALS)
        return AuthOutcome(AuthStatus.AUTHENTICATED)
