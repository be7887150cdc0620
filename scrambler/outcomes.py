# scrambler/outcomes.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from scrambler.key_grid import SlotClass
from scrambler.layout import Layout, layout_to_rows


class InputStatus(str, Enum):
    RESOLVED = "resolved"
    INVALID_ROW = "invalid_row"
    INVALID_COLUMN = "invalid_column"


@dataclass(frozen=True)
class InputOutcome:
    """
    Result of one coordinate event.

    For RESOLVED outcomes `key` is the glyph (or control label) under the
    pointer. `layout` is set only when a new layout was issued, `count` only
    when a buffer changed, `value` only when that buffer is the identifier.
    """
    status: InputStatus
    key: Optional[str] = None
    slot_class: Optional[SlotClass] = None
    layout: Optional[Layout] = None
    count: Optional[int] = None
    value: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.status is InputStatus.RESOLVED

    def to_payload(self) -> dict:
        if not self.resolved:
            error = "Invalid row" if self.status is InputStatus.INVALID_ROW else "Invalid column"
            return {"success": False, "outcome": self.status.value, "error": error}

        payload: dict[str, object] = {
            "success": True,
            "outcome": self.status.value,
            "key": self.key,
        }
        if self.layout is not None:
            payload["layout"] = layout_to_rows(self.layout)
        if self.count is not None:
            payload["count"] = self.count
        if self.value is not None:
            payload["value"] = self.value
        return payload


INVALID_ROW = InputOutcome(status=InputStatus.INVALID_ROW)
INVALID_COLUMN = InputOutcome(status=InputStatus.INVALID_COLUMN)


@dataclass(frozen=True)
class BufferOutcome:
    count: int
    value: Optional[str] = None

    def to_payload(self) -> dict:
        payload: dict[str, object] = {"success": True, "count": self.count}
        if self.value is not None:
            payload["value"] = self.value
        return payload


class AuthStatus(str, Enum):
    CREATED = "created"
    AUTHENTICATED = "authenticated"
    MISSING_CREDENTIALS = "missing_credentials"
    IDENTIFIER_TAKEN = "identifier_taken"
    INVALID_CREDENTIALS = "invalid_credentials"


AUTH_MESSAGES = {
    AuthStatus.CREATED: "Account created successfully!",
    AuthStatus.AUTHENTICATED: "Welcome back!",
    AuthStatus.MISSING_CREDENTIALS: "Both identifier and secret must be typed using the secure keyboard",
    AuthStatus.IDENTIFIER_TAKEN: "User already exists",
    AuthStatus.INVALID_CREDENTIALS: "Invalid credentials",
}


@dataclass(frozen=True)
class AuthOutcome:
    status: AuthStatus

    @property
    def success(self) -> bool:
        return self.status in (AuthStatus.CREATED, AuthStatus.AUTHENTICATED)

    @property
    def message(self) -> str:
        return AUTH_MESSAGES[self.status]

    def to_payload(self) -> dict:
        return {
            "success": self.success,
            "outcome": self.status.value,
            "message": self.message,
        }
