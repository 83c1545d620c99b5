import pytest

from keysynth.board import Board, Pin
from keysynth.knob import Knob, rotation_step

CLOCKWISE = [(1, 0), (1, 1), (0, 1), (0, 0)]
ANTICLOCKWISE = [(0, 1), (1, 1), (1, 0), (0, 0)]


@pytest.mark.parametrize(
    "args, expected",
    [
        ((0, 0, 0, 0, 1), 0),
        ((0, 0, 0, 1, 1), -1),
        ((0, 0, 1, 0, 1), +1),
        ((0, 1, 0, 0, 1), +1),
        ((0, 1, 0, 1, 1), 0),
        ((0, 1, 1, 1, 1), -1),
        ((1, 0, 0, 0, 1), -1),
        ((1, 0, 1, 0, 1), 0),
        ((1, 0, 1, 1, 1), +1),
        ((1, 1, 0, 1, 1), +1),
        ((1, 1, 1, 0, 1), -1),
        ((1, 1, 1, 1, 1), 0),
        ((0, 0, 0, 2, 1), 0),
        ((2, 2, 2, 2, 1), 0),
        ((2, 0, 0, 0, 1), 2),
    ],
)
def test_rotation_step(args, expected):
    assert rotation_step(*args) == expected


def _turn(board, knob, row, pins, sequence):
    for a, b in sequence:
        board.set_input(row, pins[0], a)
        board.set_input(row, pins[1], b)
        knob.update_rotation()


def test_clockwise_cycle_moves_two_steps():
    board = Board()
    knob = Knob(board, 3)
    _turn(board, knob, 3, (Pin.C0, Pin.C1), CLOCKWISE)
    assert knob.rotation == 2


def test_anticlockwise_cycle_returns():
    board = Board()
    knob = Knob(board, 3)
    _turn(board, knob, 3, (Pin.C0, Pin.C1), CLOCKWISE)
    _turn(board, knob, 3, (Pin.C0, Pin.C1), ANTICLOCKWISE)
    assert knob.rotation == 0


def test_rotation_is_clamped():
    board = Board()
    knob = Knob(board, 3, 0, 1)
    _turn(board, knob, 3, (Pin.C0, Pin.C1), CLOCKWISE * 2)
    assert knob.rotation == 1
    _turn(board, knob, 3, (Pin.C0, Pin.C1), ANTICLOCKWISE * 3)
    assert knob.rotation == 0


def test_button_reads_pressed_and_released():
    board = Board()
    knob = Knob(board, 2)
    assert knob.button == 0
    knob.update_button()
    assert knob.button == 1
    board.set_input(5, Pin.C0, 0)
    knob.update_button()
    assert knob.button == 0


def test_set_rotation():
    knob = Knob(Board(), 2, 1, 7)
    knob.rotation = 4
    assert knob.rotation == 4


def test_invalid_knob_id():
    with pytest.raises(ValueError):
        Knob(Board(), 4)