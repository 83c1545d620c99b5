"""Keyboard synthesiser: key scanning, multi-keyboard linking over CAN, display and output."""

from __future__ import annotations

import queue
import threading
from enum import Enum

from .board import SAMPLE_FREQUENCY, Board, Pin
from .canbus import FRAME_LENGTH, CanBus, CanError
from .joystick import Joystick
from .knob import Knob
from .sound import SoundGenerator

CAN_ID = 0x123
CAN_MASK = 0x7FF
QUEUE_LENGTH = 36
TX_SLOTS = 3
KEY_ROWS = 3
SCAN_ROWS = 4
KEYS_PER_ROW = 4
DC_OFFSET = 128
WEST_DETECT_ROW = 5
EAST_DETECT_ROW = 6
WAVE_NAMES = ("Saw", "Sin", "Sqr", "Tri")

SCAN_PERIOD_MS = 20
JOYSTICK_PERIOD_MS = 30
MULTI_SYNTH_PERIOD_MS = 500
SAMPLE_RATE_HZ = SAMPLE_FREQUENCY


class Action(Enum):
    """First byte of a frame exchanged between keyboards."""

    PRESS = ord("P")
    RELEASE = ord("R")
    CONNECT = ord("C")
    SLAVE = ord("S")
    MASTER = ord("M")
    TRANSMITTER = ord("T")


def _frame(action: Action, *payload: int) -> bytes:
    return bytes([action.value, *(value & 0xFF for value in payload)]).ljust(FRAME_LENGTH, b"\0")


def _int8(value: int) -> int:
    value &= 0xFF
    return value - 0x100 if value & 0x80 else value


class Synthesizer:
    """One keyboard module: reads its keys and knobs, plays or forwards notes."""

    def __init__(self, board: Board, bus: CanBus):
        self.board = board
        self.bus = bus
        self.echo_knob = Knob(board, 0, 0, 10)
        self.spare_knob = Knob(board, 1)
        self.octave_knob = Knob(board, 2, 1, 7)
        self.volume_knob = Knob(board, 3, 0, 16)
        self.joystick = Joystick(board)
        self.sound = SoundGenerator(self.joystick)

        self.key_array = [0] * 7
        self._key_lock = threading.Lock()
        self._connection_lock = threading.Lock()
        self._tx_slots = threading.Semaphore(TX_SLOTS)

        self.incoming: queue.Queue[bytes] = queue.Queue(QUEUE_LENGTH)
        self.outgoing: queue.Queue[bytes] = queue.Queue(QUEUE_LENGTH)

        self.receiver = True
        self.connected = False
        self.east_connection = False
        self.west_connection = False
        self.led = False

        self._prev_octave_button = 1
        self._prev_wave_button = 1

        bus.set_filter(CAN_ID, CAN_MASK)
        bus.on_receive(self._on_frame_received)
        bus.on_transmit(self._on_frame_sent)
        if not bus.started:
            bus.start()

        self.octave_knob.rotation = 4
        self.volume_knob.rotation = 8

    def _on_frame_received(self) -> None:
        message = self.bus.receive()
        try:
            self.incoming.put_nowait(message.data)
        except queue.Full:
            pass

    def _on_frame_sent(self) -> None:
        self._tx_slots.release()

    def _send(self, action: Action, *payload: int) -> None:
        self.outgoing.put_nowait(_frame(action, *payload))

    def _read_rows(self) -> list[int]:
        readings = []
        for row in range(SCAN_ROWS):
            self.board.set_row(row)
            readings.append(self.board.read_cols())
        return readings

    def scan_keys(self) -> None:
        """Read keys and knobs once, playing or forwarding any key changes."""
        readings = self._read_rows()
        receiver = self.receiver

        with self._key_lock:
            octave = self.octave_knob.rotation
            for row, (keys, old_keys) in enumerate(zip(readings[:KEY_ROWS], self.key_array)):
                changed = keys ^ old_keys
                for column in range(KEYS_PER_ROW):
                    mask = 1 << column
                    if not changed & mask:
                        continue
                    note = row * KEYS_PER_ROW + column
                    released = bool(keys & mask)
                    if receiver:
                        if released:
                            self.sound.echo_key(octave, note)
                        else:
                            self.sound.add_key(octave, note)
                    else:
                        action = Action.RELEASE if released else Action.PRESS
                        self._send(action, self.octave_knob.rotation, note)
            self.key_array[:KEY_ROWS] = readings[:KEY_ROWS]

        if receiver:
            self.volume_knob.update_rotation()
            self.volume_knob.update_button()
            self.echo_knob.update_rotation()
            self.sound.set_global_lifetime(self.echo_knob.rotation)
            self.echo_knob.update_button()

        self.octave_knob.update_rotation()
        self.octave_knob.update_button()

        octave_button = self.octave_knob.button
        if self.connected and not octave_button and self._prev_octave_button:
            if not self.receiver:
                self.receiver = True
                self._send(Action.TRANSMITTER)
        self._prev_octave_button = octave_button

        wave_button = self.echo_knob.button
        if not wave_button and self._prev_wave_button:
            self.sound.waveform = (self.sound.waveform + 1) % len(WAVE_NAMES)
        self._prev_wave_button = wave_button

    def auto_multi_synth(self) -> None:
        """Detect keyboards joined or removed on either side."""
        with self._connection_lock:
            self.board.set_row(WEST_DETECT_ROW)
            west = self.board.read_pin(Pin.C3)

            if not self.west_connection and not west:
                self._send(Action.CONNECT, self.octave_knob.rotation - 1)
                self.west_connection = True

            if self.connected:
                self.board.set_row(EAST_DETECT_ROW)
                east = self.board.read_pin(Pin.C3)
                if east:
                    self.east_connection = False
                if west:
                    self.west_connection = False
                if east and west:
                    self.connected = False
                    self.receiver = True

    def update_joystick(self) -> None:
        self.joystick.update_position()
        self.joystick.update_button()

    def decode(self, message) -> None:
        """Act on one eight-byte frame received from another keyboard."""
        data = bytes(getattr(message, "data", message)).ljust(FRAME_LENGTH, b"\0")
        with self._connection_lock:
            try:
                action = Action(data[0])
            except ValueError:
                return

            if action is Action.PRESS:
                if self.receiver:
                    self.sound.add_key(data[1], data[2])
            elif action is Action.RELEASE:
                if self.receiver:
                    self.sound.echo_key(data[1], data[2])
            elif action is Action.CONNECT:
                if self.connected:
                    if not self.east_connection:
                        self.board.set_row(EAST_DETECT_ROW)
                        if not self.board.read_pin(Pin.C3):
                            self.east_connection = True
                            self._send(Action.MASTER, self.octave_knob.rotation + 1)
                else:
                    self.octave_knob.rotation = _int8(data[1])
                    self.receiver = False
                    self.connected = True
                    self.east_connection = True
                    self._send(Action.SLAVE)
            elif action is Action.SLAVE:
                if not self.connected:
                    self.connected = True
            elif action is Action.MASTER:
                if not self.connected:
                    self.octave_knob.rotation = _int8(data[1])
                    self.receiver = False
                    self.connected = True
            elif action is Action.TRANSMITTER:
                self.receiver = False

    def process_incoming(self) -> int:
        """Decode every queued incoming frame; return how many there were."""
        count = 0
        while True:
            try:
                data = self.incoming.get_nowait()
            except queue.Empty:
                return count
            self.decode(data)
            count += 1

    def flush_outgoing(self) -> int:
        """Hand queued frames to the bus while mailboxes are free; return how many."""
        count = 0
        while not self.outgoing.empty():
            if not self._tx_slots.acquire(blocking=False):
                break
            try:
                data = self.outgoing.get_nowait()
            except queue.Empty:
                self._tx_slots.release()
                break
            try:
                self.bus.transmit(CAN_ID, data)
            except CanError:
                self._tx_slots.release()
                raise
            count += 1
        return count

    def sample(self) -> int:
        """Produce one output sample, scaled by volume and offset for the DAC."""
        value = self.sound.vout()
        value >>= 8 - self.volume_knob.rotation // 2
        return value + DC_OFFSET

    def display_lines(self) -> list[str]:
        """The three text rows of the display, left to right within each row."""
        rows: list[list[tuple[int, str]]] = [[], [], []]
        rows[0].append((2, f"Oct: {self.octave_knob.rotation}"))

        receiver = self.receiver
        connected = self.connected
        if not connected or receiver:
            rows[1].append((60, f"Vol: {self.volume_knob.rotation}"))
            rows[0].append((42, f"Wave: {WAVE_NAMES[self.sound.waveform]}"))
            rows[1].append((2, f"Echo: {self.echo_knob.rotation}s"))
            rows[2].append((2, self.sound.current_notes()))
        if connected:
            rows[0].append((110, "Rx" if receiver else "Tx"))

        self.led = not self.led
        return [" ".join(text for _, text in sorted(row)) for row in rows]