# scrambler/input_service.py

import logging
from dataclasses import replace
from typing import Optional

from scrambler.geometry import Geometry, Point, resolve, resolve_row
from scrambler.key_grid import (
    BACKSPACE_LABEL,
    CASE_TOGGLE_LABELS,
    KEY_GRID,
    SPACE_LABEL,
    SlotClass,
)
from scrambler.layout import Layout, LayoutGenerator
from scrambler.outcomes import (
    INVALID_COLUMN,
    INVALID_ROW,
    BufferOutcome,
    InputOutcome,
    InputStatus,
)
from scrambler.session_store import ActiveField, SessionState, SessionStore

logger = logging.getLogger("scrambler_backend")


class InputResolutionService:
    """
    Turns reported pointer coordinates into buffer edits.

    Every call reads the session, derives a new SessionState and writes it
    back whole. Only alphanumeric keys cost a re-scramble; control keys keep
    the current layout. The secret buffer's text never leaves this class,
    only its length.
    """

    def __init__(self, store: SessionStore, layout_generator: LayoutGenerator | None = None):
        self.store = store
        self.layout_generator = layout_generator or store.layout_generator

    # -----------------------
    # Session helpers
    # -----------------------

    def session(self, session_id: Optional[str]) -> SessionState:
        return self.store.get_or_create(session_id)

    def _target(self, state: SessionState, target_field: Optional[ActiveField]) -> ActiveField:
        return target_field if target_field is not None else state.active_field

    def _value_for(self, field: ActiveField, buffer: str) -> Optional[str]:
        return buffer if field is ActiveField.IDENTIFIER else None

    # -----------------------
    # Operations
    # -----------------------

    def request_layout(self, session_id: Optional[str], scramble: bool, uppercase: bool) -> tuple[SessionState, Layout]:
        state = self.session(session_id)
        layout = self.layout_generator.generate(scramble=scramble, uppercase=uppercase)
        state = replace(state, layout=layout)
        self.store.save(state)
        return state, layout

    def set_active_field(self, session_id: Optional[str], field: ActiveField) -> SessionState:
        state = self.session(session_id)
        if state.active_field is not field:
            state = replace(state, active_field=field)
            self.store.save(state)
        return state

    def resolve_input(
        self,
        session_id: Optional[str],
        point: Point,
        geometry: Geometry,
        target_field: Optional[ActiveField] = None,
        scramble_next: bool = True,
        uppercase_next: bool = True,
    ) -> InputOutcome:
        """
        Resolve one coordinate event against the session's stored layout.

        Raises MalformedGeometryError for unusable geometry; misses come back
        as INVALID_ROW / INVALID_COLUMN and leave the session untouched.
        """
        cell = resolve(point, geometry, KEY_GRID)
        state = self.session(session_id)

        if cell is None:
            # resolve() only says "miss"; re-check the row to report which axis
            if resolve_row(point.y, geometry.height, len(KEY_GRID)) is None:
                logger.debug(f"[input] session={state.id} row miss at y={point.y}")
                return INVALID_ROW
            logger.debug(f"[input] session={state.id} column miss at x={point.x}")
            return INVALID_COLUMN

        row, col = cell
        slot = KEY_GRID[row][col]
        glyph = state.layout[row][col]
        field = self._target(state, target_field)

        logger.debug(f"[input] session={state.id} cell=({row}, {col}) class={slot.value} field={field.value}")

        if slot in (SlotClass.DIGIT, SlotClass.LETTER):
            buffer = state.buffer(field) + glyph
            new_layout = self.layout_generator.generate(scramble=scramble_next, uppercase=uppercase_next)
            self.store.save(replace(state.with_buffer(field, buffer), layout=new_layout))
            return InputOutcome(
                status=InputStatus.RESOLVED,
                key=glyph,
                slot_class=slot,
                layout=new_layout,
                count=len(buffer),
                value=self._value_for(field, buffer),
            )

        if glyph == BACKSPACE_LABEL:
            buffer = state.buffer(field)[:-1]
            self.store.save(state.with_buffer(field, buffer))
            return InputOutcome(
                status=InputStatus.RESOLVED,
                key=glyph,
                slot_class=slot,
                count=len(buffer),
                value=self._value_for(field, buffer),
            )

        if glyph == SPACE_LABEL:
            buffer = state.buffer(field) + " "
            self.store.save(state.with_buffer(field, buffer))
            return InputOutcome(
                status=InputStatus.RESOLVED,
                key=glyph,
                slot_class=slot,
                count=len(buffer),
                value=self._value_for(field, buffer),
            )

        if glyph in CASE_TOGGLE_LABELS:
            # the caller inverts case on its next layout request
            return InputOutcome(status=InputStatus.RESOLVED, key=glyph, slot_class=slot)

        # Tab, Enter, Esc, arrows, punctuation: not bound yet
        return InputOutcome(status=InputStatus.RESOLVED, key=glyph, slot_class=slot)

    def clear_buffer(self, session_id: Optional[str], target_field: Optional[ActiveField] = None) -> BufferOutcome:
        state = self.session(session_id)
        field = self._target(state, target_field)
        if state.buffer(field):
            self.store.save(state.with_buffer(field, ""))
        return BufferOutcome(count=0, value=self._value_for(field, ""))

    def backspace(self, session_id: Optional[str], target_field: Optional[ActiveField] = None) -> BufferOutcome:
        state = self.session(session_id)
        field = self._target(state, target_field)
        buffer = state.buffer(field)[:-1]
        self.store.save(state.with_buffer(field, buffer))
        return BufferOutcome(count=len(buffer), value=self._value_for(field, buffer))
