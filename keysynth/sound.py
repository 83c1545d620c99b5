"""Polyphonic sound generator with four waveforms and an echo tail."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import IntEnum

from .board import FREQUENCIES, NOTE_NAMES, SAMPLE_FREQUENCY, STEP_SIZES

VOICE_COUNT = 12
MAX_OCTAVE = 8
CENTRE_X = 532
SHIFT_PER_UNIT = 10000
STEP_PER_F_OVER_FS = 4294967
SINE_AMPLITUDE = 214748360
SQUARE_PEAK = 2147483647
BASE_INTENSITY_SHIFT = 24
TRIANGLE_SHIFT = 21
ECHO_STAGES = 6

_SINE_BANDS = (
    (0, 30, 10), (30, 60, 29), (60, 90, 47), (90, 130, 63),
    (130, 160, 77), (160, 190, 88), (190, 220, 95), (220, 250, 99),
    (250, 280, 99), (280, 310, 95), (310, 340, 88), (340, 380, 77),
    (380, 410, 63), (410, 440, 47), (440, 470, 29), (470, 500, 10),
    (500, 530, -10), (530, 560, -29), (560, 590, -47), (590, 630, -63),
    (630, 660, -77), (660, 690, -88), (690, 720, -95), (720, 750, -99),
    (750, 780, -99), (780, 810, -95), (810, 840, -88), (840, 880, -77),
    (880, 910, -63), (910, 940, -47), (940, 970, -29), (970, 1000, -10),
)


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _div_trunc(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b > 0) else -quotient


class VoiceStatus(IntEnum):
    FREE = 0
    ECHO = 1
    HELD = 2


class Waveform(IntEnum):
    SAWTOOTH = 0
    SINE = 1
    SQUARE = 2
    TRIANGLE = 3


@dataclass
class Voice:
    """State of one sounding note."""

    status: VoiceStatus = VoiceStatus.FREE
    octave: int = 0
    note: int = 0
    phase_acc: int = 0
    step_size: int = 0
    cycles_per_half_period: int = 0
    wave_count: int = 0
    f_over_fs: int = 0
    up_or_down: int = 0
    lifetime: int = 0
    intensity_right_shift: int = BASE_INTENSITY_SHIFT

    def clear(self) -> None:
        """Free the voice; the echo intensity is left for the next key to reset."""
        self.status = VoiceStatus.FREE
        self.note = 0
        self.octave = 0
        self.phase_acc = 0
        self.lifetime = 0
        self.cycles_per_half_period = 0
        self.f_over_fs = 0
        self.step_size = 0
        self.up_or_down = 1
        self.wave_count = 0

    def matches(self, octave: int, note: int) -> bool:
        return self.status != VoiceStatus.FREE and self.octave == octave and self.note == note


def get_shift(step_size: int, joystick_x: int) -> int:
    """Apply the joystick's horizontal pitch bend to a step size."""
    return _int32(step_size - (joystick_x - CENTRE_X) * SHIFT_PER_UNIT)


def is_between(low_bound, up_bound, x) -> bool:
    """Return whether low_bound <= x < up_bound."""
    return low_bound <= x < up_bound


def sine_lookup(x) -> int:
    """Approximate A*sin(2*pi*x/1000) with a coarse table; x is taken as a 16-bit value."""
    x = int(x) & 0xFFFF
    for low, high, factor in _SINE_BANDS:
        if is_between(low, high, x):
            return _int32(SINE_AMPLITUDE * factor)
    return 0


def _check_key(octave: int, note: int) -> None:
    if not 0 <= note < len(NOTE_NAMES):
        raise ValueError(f"note must be between 0 and {len(NOTE_NAMES) - 1}, got {note}")
    if not 0 <= octave <= MAX_OCTAVE:
        raise ValueError(f"octave must be between 0 and {MAX_OCTAVE}, got {octave}")


class SoundGenerator:
    """Twelve voices mixed into one output sample per call to vout()."""

    def __init__(self, joystick):
        self._joystick = joystick
        self._lock = threading.RLock()
        self._voices = [Voice() for _ in range(VOICE_COUNT)]
        self._waveform = Waveform.SAWTOOTH
        self._global_lifetime = 0

    @property
    def voices(self) -> tuple[Voice, ...]:
        return tuple(self._voices)

    def add_key(self, octave: int, note: int) -> None:
        """Start a note in the first free voice; ignored when all voices are busy."""
        _check_key(octave, note)
        with self._lock:
            voice = next((v for v in self._voices if v.status == VoiceStatus.FREE), None)
            if voice is None:
                return
            voice.status = VoiceStatus.HELD
            voice.note = note
            voice.octave = octave
            voice.intensity_right_shift = BASE_INTENSITY_SHIFT
            voice.up_or_down = 1
            voice.wave_count = 0
            if octave > 4:
                frequency = FREQUENCIES[note] << (octave - 4)
            else:
                frequency = FREQUENCIES[note] >> (4 - octave)
            voice.cycles_per_half_period = (SAMPLE_FREQUENCY // (frequency * 2)) & 0xFFFF
            voice.f_over_fs = (frequency // 22) & 0xFFFF
            voice.step_size = _int32(STEP_PER_F_OVER_FS * voice.f_over_fs)

    def echo_key(self, octave: int, note: int) -> None:
        """Let every voice playing this key fade out over the global lifetime."""
        with self._lock:
            for voice in self._voices:
                if voice.matches(octave, note):
                    voice.status = VoiceStatus.ECHO
                    voice.lifetime = self._global_lifetime

    def remove_key(self, octave: int, note: int) -> None:
        """Silence the first voice playing this key at once."""
        with self._lock:
            voice = next((v for v in self._voices if v.matches(octave, note)), None)
            if voice is not None:
                voice.clear()

    def vout(self) -> int:
        """Advance every active voice by one sample and return the mixed output."""
        with self._lock:
            waveform = self._waveform
            generate = {
                Waveform.SAWTOOTH: self._sawtooth,
                Waveform.SINE: self._sine,
                Waveform.SQUARE: self._square,
                Waveform.TRIANGLE: self._triangular,
            }[waveform]
            total = 0
            for voice in self._voices:
                if voice.status == VoiceStatus.FREE:
                    continue
                generate(voice)
                if voice.status == VoiceStatus.ECHO:
                    lifetime = self._global_lifetime
                    scale = lifetime // ECHO_STAGES
                    if voice.lifetime in {lifetime - k * scale for k in range(1, ECHO_STAGES)}:
                        voice.intensity_right_shift = (voice.intensity_right_shift + 1) & 0xFF
                    total += voice.phase_acc >> voice.intensity_right_shift
                    if voice.lifetime == 0:
                        voice.clear()
                    else:
                        voice.lifetime -= 1
                elif waveform == Waveform.TRIANGLE:
                    total += voice.phase_acc >> TRIANGLE_SHIFT
                else:
                    total += voice.phase_acc >> BASE_INTENSITY_SHIFT
            return _int32(total)

    @property
    def waveform(self) -> Waveform:
        return self._waveform

    @waveform.setter
    def waveform(self, value) -> None:
        self._waveform = Waveform(value)

    @property
    def global_lifetime(self) -> int:
        """Echo length in samples."""
        return self._global_lifetime

    def set_global_lifetime(self, seconds: int) -> None:
        if seconds < 0:
            raise ValueError(f"echo time cannot be negative, got {seconds}")
        self._global_lifetime = ((int(seconds) & 0xFFFF) * SAMPLE_FREQUENCY) & 0xFFFFFFFF

    def sawtooth(self, index: int) -> None:
        with self._lock:
            self._sawtooth(self._voices[index])

    def sine(self, index: int) -> None:
        with self._lock:
            self._sine(self._voices[index])

    def square(self, index: int) -> None:
        with self._lock:
            self._square(self._voices[index])

    def triangular(self, index: int) -> None:
        with self._lock:
            self._triangular(self._voices[index])

    def current_notes(self) -> str:
        """Names of the held notes, each followed by a space."""
        with self._lock:
            return "".join(
                f"{NOTE_NAMES[v.note]}{v.octave} "
                for v in self._voices
                if v.status == VoiceStatus.HELD
            )

    def _bend(self) -> int:
        return self._joystick.x // 100 - 5

    def _sawtooth(self, voice: Voice) -> None:
        step = STEP_SIZES[voice.note]
        if voice.octave > 4:
            step = _int32(step << (voice.octave - 4))
        else:
            step >>= 4 - voice.octave
        shift = get_shift(step, self._joystick.x)
        voice.phase_acc = _int32(voice.phase_acc + shift)

    def _sine(self, voice: Voice) -> None:
        shift = _int32(voice.f_over_fs + self._bend())
        voice.phase_acc = sine_lookup(voice.wave_count * shift) >> 1
        if voice.wave_count >= voice.cycles_per_half_period * 2:
            voice.wave_count = 0
        else:
            voice.wave_count = (voice.wave_count + 1) & 0xFF

    def _square(self, voice: Voice) -> None:
        if voice.phase_acc == 0:
            voice.phase_acc = SQUARE_PEAK
        shift = _int32(voice.cycles_per_half_period + self._bend())
        if voice.wave_count == shift:
            voice.phase_acc = _int32(-voice.phase_acc)
            voice.wave_count = 0
        else:
            voice.wave_count = (voice.wave_count + 1) & 0xFF

    def _triangular(self, voice: Voice) -> None:
        if voice.phase_acc == 0:
            start = _int32(_int32(-voice.step_size) * voice.cycles_per_half_period)
            voice.phase_acc = _div_trunc(start, 2)
        if voice.wave_count == voice.cycles_per_half_period:
            voice.up_or_down = -1
        elif voice.wave_count == 2 * voice.cycles_per_half_period:
            voice.up_or_down = 1
            voice.wave_count = 0
        voice.wave_count = (voice.wave_count + 1) & 0xFF
        shift = get_shift(voice.step_size, self._joystick.x)
        voice.phase_acc = _int32(voice.phase_acc + voice.up_or_down * shift)