"""Simulated keyboard board: row multiplexer, column inputs and analogue pins."""

from __future__ import annotations

import threading
from enum import Enum

DISPLAY_INTERVAL_MS = 100
SAMPLE_FREQUENCY = 22000

STEP_SIZES = (
    51076056, 54113197, 57330935, 60740010, 64351798, 68178356,
    72232452, 76527617, 81078186, 85899345, 91007186, 96418755,
)
NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")
FREQUENCIES = (262, 277, 294, 311, 330, 349, 370, 392, 415, 440, 466, 494)

ROW_COUNT = 8
NO_KEY = 4


class Pin(Enum):
    """Input pins of the board."""

    C0 = "C0"
    C1 = "C1"
    C2 = "C2"
    C3 = "C3"
    JOYX = "JOYX"
    JOYY = "JOYY"

    @property
    def is_analog(self) -> bool:
        return self in (Pin.JOYX, Pin.JOYY)


COLUMNS = (Pin.C0, Pin.C1, Pin.C2, Pin.C3)

_KEY_INDEX = {0xE: 0, 0xD: 1, 0xB: 2, 0x7: 3}


def key_index(key: int) -> int:
    """Return the column of the single pressed key in a row reading, or NO_KEY."""
    return _KEY_INDEX.get(key, NO_KEY)


def _check_row(row: int) -> int:
    if not 0 <= row < ROW_COUNT:
        raise ValueError(f"row must be between 0 and {ROW_COUNT - 1}, got {row}")
    return row


def _check_digital(pin: Pin) -> Pin:
    if pin.is_analog:
        raise ValueError(f"{pin.name} is an analogue pin")
    return pin


def _check_analog(pin: Pin) -> Pin:
    if not pin.is_analog:
        raise ValueError(f"{pin.name} is a digital pin")
    return pin


class Board:
    """Key matrix and analogue inputs; unset digital inputs read high (released)."""

    def __init__(self):
        self._lock = threading.RLock()
        self._row = 0
        self._inputs: dict[tuple[int, Pin], int] = {}
        self._analog: dict[Pin, int] = {Pin.JOYX: 0, Pin.JOYY: 0}

    @property
    def row(self) -> int:
        return self._row

    def set_row(self, row: int) -> None:
        """Select the matrix row that the column pins read from."""
        with self._lock:
            self._row = _check_row(row)

    def read_pin(self, pin: Pin) -> int:
        """Read a column pin on the selected row."""
        _check_digital(pin)
        with self._lock:
            return self._inputs.get((self._row, pin), 1)

    def read_analog(self, pin: Pin) -> int:
        return self._analog[_check_analog(pin)]

    def set_input(self, row: int, pin: Pin, value) -> None:
        """Drive the level seen by a column pin when the given row is selected."""
        _check_row(row)
        _check_digital(pin)
        with self._lock:
            self._inputs[(row, pin)] = 1 if value else 0

    def set_analog(self, pin: Pin, value: int) -> None:
        with self._lock:
            self._analog[_check_analog(pin)] = int(value)

    def read_cols(self) -> int:
        """Read all four columns of the selected row as one value, C0 in bit 0."""
        with self._lock:
            return sum(self.read_pin(pin) << bit for bit, pin in enumerate(COLUMNS))