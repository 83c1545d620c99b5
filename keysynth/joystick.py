"""Analogue joystick with a push button."""

from __future__ import annotations

from .board import Board, Pin

BUTTON_ROW = 5


class Joystick:
    """Joystick position and button, refreshed from the board on demand."""

    def __init__(self, board: Board):
        self._board = board
        self._button = 1
        self._x = 0
        self._y = 0

    def update_button(self) -> None:
        self._board.set_row(BUTTON_ROW)
        self._button = self._board.read_pin(Pin.C2)

    def update_position(self) -> None:
        self._x = self._board.read_analog(Pin.JOYX)
        self._y = self._board.read_analog(Pin.JOYY)

    @property
    def button(self) -> int:
        """Button level: 1 when released, 0 when pressed."""
        return self._button

    @property
    def x(self) -> int:
        return self._x

    @property
    def y(self) -> int:
        return self._y