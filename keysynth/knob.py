"""Rotary knobs with quadrature decoding and a push button."""

from __future__ import annotations

from .board import Board, Pin

_TRANSITIONS = {
    (0, 0): {(0, 1): -1, (1, 0): +1},
    (0, 1): {(0, 0): +1, (1, 1): -1},
    (1, 0): {(0, 0): -1, (1, 1): +1},
    (1, 1): {(0, 1): +1, (1, 0): -1},
}


def rotation_step(prev_bit0, prev_bit1, bit0, bit1, prev_step) -> int:
    """Return the change in half-steps caused by a quadrature transition."""
    if prev_bit0 == bit0 and prev_bit1 == bit1:
        return 0
    moves = _TRANSITIONS.get((prev_bit0, prev_bit1))
    if moves is None:
        return prev_step * 2
    return moves.get((bit0, bit1), 0)


class Knob:
    """One of the four knobs, numbered 0 to 3 from left to right."""

    def __init__(self, board: Board, knob_id: int, min_value: int = 0, max_value: int = 16):
        if knob_id not in range(4):
            raise ValueError(f"knob id must be between 0 and 3, got {knob_id}")
        self._board = board
        self.knob_id = knob_id
        if knob_id in (2, 3):
            self.rotation_row, self.button_row = 3, 5
        else:
            self.rotation_row, self.button_row = 4, 6
        if knob_id in (1, 3):
            self._a_pin, self._b_pin, self._button_pin = Pin.C0, Pin.C1, Pin.C1
        else:
            self._a_pin, self._b_pin, self._button_pin = Pin.C2, Pin.C3, Pin.C0
        self.lower_limit = min_value * 2
        self.upper_limit = max_value * 2
        self._prev_bits = (0, 0)
        self._change = 0
        self._raw = 0
        self._button = 0

    def update_rotation(self) -> None:
        """Read the quadrature pins and move the rotation within its limits."""
        self._board.set_row(self.rotation_row)
        bits = (self._board.read_pin(self._a_pin), self._board.read_pin(self._b_pin))
        self._change = rotation_step(*self._prev_bits, *bits, self._change)
        self._prev_bits = bits
        self._raw = max(self.lower_limit, min(self.upper_limit, self._raw + self._change))

    def update_button(self) -> None:
        self._board.set_row(self.button_row)
        self._button = self._board.read_pin(self._button_pin)

    @property
    def rotation(self) -> int:
        """Current rotation in whole steps."""
        return int(self._raw / 2)

    @rotation.setter
    def rotation(self, value: int) -> None:
        self._raw = value * 2

    @property
    def button(self) -> int:
        """Button level: 1 when released, 0 when pressed."""
        return self._button