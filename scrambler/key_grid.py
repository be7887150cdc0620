# scrambler/key_grid.py
"""
The fixed keyboard skeleton shared by every layout.

Each slot has a label class: `digit` and `letter` slots receive glyphs from
the permuted alphabets when a layout is generated, `fixed` slots always keep
their control / punctuation label.
"""
from enum import Enum
from typing import TypeAlias


class SlotClass(str, Enum):
    DIGIT = "digit"
    LETTER = "letter"
    FIXED = "fixed"


DIGIT_SET: tuple[str, ...] = tuple("1234567890")
LETTER_SET: tuple[str, ...] = tuple("QWERTYUIOPASDFGHJKLZXCVBNM")

BACKSPACE_LABEL = "⌫"
SPACE_LABEL = "Space"
SHIFT_LABEL = "Shift"
CAPS_LABEL = "Caps"
ENTER_LABEL = "Enter"

CASE_TOGGLE_LABELS = frozenset({SHIFT_LABEL, CAPS_LABEL})

# Home positions; also the canonical (unscrambled) layout.
KEYBOARD_STRUCTURE: tuple[tuple[str, ...], ...] = (
    ("Esc", "1", "2", "3", "4", "5", "6", "7", "8", "9", "0", "-", "=", BACKSPACE_LABEL),
    ("Tab", "Q", "W", "E", "R", "T", "Y", "U", "I", "O", "P", "[", "]", "\\"),
    (CAPS_LABEL, "A", "S", "D", "F", "G", "H", "J", "K", "L", ";", "'", ENTER_LABEL),
    (SHIFT_LABEL, "Z", "X", "C", "V", "B", "N", "M", ",", ".", "/", SHIFT_LABEL),
    ("Ctrl", "Alt", SPACE_LABEL, "Alt", "Ctrl", "←", "↑", "↓", "→"),
)

KeyGrid: TypeAlias = tuple[tuple[SlotClass, ...], ...]


def _classify(label: str) -> SlotClass:
    if label in DIGIT_SET:
        return SlotClass.DIGIT
    if label in LETTER_SET:
        return SlotClass.LETTER
    return SlotClass.FIXED


KEY_GRID: KeyGrid = tuple(
    tuple(_classify(label) for label in row) for row in KEYBOARD_STRUCTURE
)


def count_slots(grid: KeyGrid, cls: SlotClass) -> int:
    return sum(1 for row in grid for c in row if c is cls)


def find_label(label: str) -> tuple[int, int]:
    """
    Home position of a fixed label (first occurrence in row-major order).
    Raises KeyError when the label is not on the keyboard.
    """
    for r, row in enumerate(KEYBOARD_STRUCTURE):
        for c, value in enumerate(row):
            if value == label:
                return r, c
    raise KeyError(label)


if (
    count_slots(KEY_GRID, SlotClass.DIGIT) != len(DIGIT_SET)
    or count_slots(KEY_GRID, SlotClass.LETTER) != len(LETTER_SET)
):
    raise RuntimeError("KEYBOARD_STRUCTURE must hold every digit and letter exactly once")
