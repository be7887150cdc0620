# scrambler/layout.py
import json
import random
from typing import TypeAlias

from scrambler.key_grid import (
    DIGIT_SET,
    KEY_GRID,
    KEYBOARD_STRUCTURE,
    LETTER_SET,
    KeyGrid,
    SlotClass,
)

# Rows of glyphs, congruent with KEY_GRID. Tuples so a layout is never
# edited in place; every keystroke swaps in a new one.
Layout: TypeAlias = tuple[tuple[str, ...], ...]


class LayoutGenerator:
    """
    Produces keyboard layouts: digit and letter slots get a (optionally
    shuffled) assignment of their alphabet, fixed slots keep their label.

    Digit slots consume the digit permutation in row-major order, letter slots
    the letter permutation likewise. `uppercase=False` lower-cases letters only.
    """

    def __init__(self, rng: random.Random | None = None, grid: KeyGrid = KEY_GRID):
        self._rng = rng if rng is not None else random.SystemRandom()
        self._grid = grid

    def generate(self, scramble: bool = True, uppercase: bool = True) -> Layout:
        digits = list(DIGIT_SET)
        letters = list(LETTER_SET)

        if scramble:
            # Fisher-Yates; every permutation reachable
            self._rng.shuffle(digits)
            self._rng.shuffle(letters)

        if not uppercase:
            letters = [c.lower() for c in letters]

        digit_iter = iter(digits)
        letter_iter = iter(letters)

        rows = []
        for r, row in enumerate(self._grid):
            out = []
            for c, cls in enumerate(row):
                if cls is SlotClass.DIGIT:
                    out.append(next(digit_iter))
                elif cls is SlotClass.LETTER:
                    out.append(next(letter_iter))
                else:
                    out.append(KEYBOARD_STRUCTURE[r][c])
            rows.append(tuple(out))
        return tuple(rows)


def layout_to_rows(layout: Layout) -> list[list[str]]:
    return [list(row) for row in layout]


def layout_from_rows(rows) -> Layout:
    """
    Rebuild a Layout from its list-of-lists form, checking it still matches
    the grid shape and keeps every fixed label where it belongs.
    """
    if not isinstance(rows, (list, tuple)) or len(rows) != len(KEY_GRID):
        raise ValueError("layout row count does not match the keyboard grid")

    out = []
    for r, row in enumerate(rows):
        if not isinstance(row, (list, tuple)) or len(row) != len(KEY_GRID[r]):
            raise ValueError(f"layout row {r} does not match the keyboard grid")
        for c, glyph in enumerate(row):
            if not isinstance(glyph, str):
                raise ValueError(f"layout slot ({r}, {c}) is not a string")
            if KEY_GRID[r][c] is SlotClass.FIXED and glyph != KEYBOARD_STRUCTURE[r][c]:
                raise ValueError(f"layout slot ({r}, {c}) must keep label {KEYBOARD_STRUCTURE[r][c]!r}")
        out.append(tuple(row))
    return tuple(out)


def layout_to_json(layout: Layout) -> str:
    return json.dumps(layout_to_rows(layout), ensure_ascii=False)


def layout_from_json(raw: str) -> Layout:
    return layout_from_rows(json.loads(raw))
