from keysynth.board import Board, Pin
from keysynth.joystick import Joystick


def test_button_defaults_to_released():
    joystick = Joystick(Board())
    assert joystick.button == 1
    assert joystick.button == 1


def test_position_defaults_to_zero():
    joystick = Joystick(Board())
    assert joystick.x == 0
    assert joystick.y == 0


def test_update_button_reads_row_five():
    board = Board()
    joystick = Joystick(board)
    board.set_input(5, Pin.C2, 0)
    board.set_row(0)
    joystick.update_button()
    assert joystick.button == 0
    assert board.row == 5


def test_update_position_reads_analogue_pins():
    board = Board()
    joystick = Joystick(board)
    board.set_analog(Pin.JOYX, 600)
    board.set_analog(Pin.JOYY, 300)
    assert joystick.x == 0
    joystick.update_position()
    assert joystick.x == 600
    assert joystick.y == 300