"""Simulated polyphonic keyboard synthesizer: board, knobs, joystick, CAN link and voices."""

__version__ = "0.1.0"
__all__ = ["board", "canbus", "joystick", "knob", "sound", "synth"]