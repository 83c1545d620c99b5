# keysynth

A software model of a small keyboard synthesizer: a twelve-key keyboard
scanned through a row/column matrix, four rotary knobs with push buttons,
an analogue joystick, a twelve-voice sound generator and a CAN link that
lets several keyboards join up into one instrument.

Everything runs in plain Python with no third-party dependencies. The
hardware is represented by a `Board` object whose inputs you set from your
own code or tests, so the whole instrument can be driven step by step.

## What it does

- **Keys** are scanned row by row (`Synthesizer.scan_keys`); a press starts
  a note, a release lets it fade out as an echo. On a keyboard that is not
  the receiver, presses and releases are sent over the bus instead.
- **Knobs** are quadrature encoders. `rotation_step` turns a pair of
  readings into a step of -1, 0 or +1, and each `Knob` clamps its value to
  its own range:
  - knob 0: echo time in seconds (0–10); its button cycles the waveform
  - knob 2: octave (1–7, starts at 4); on a connected transmitter its
    button makes this keyboard the receiver and tells the others to
    transmit
  - knob 3: volume (0–16, starts at 8)
- **Waveforms**: sawtooth, sine, square and triangle (`Waveform`).
- **Echo**: a released key keeps sounding for the echo time while its
  intensity fades in steps, then its voice is freed.
- **Joystick**: the X axis bends the pitch of the playing voices.
- **Several keyboards**: `auto_multi_synth` watches the west and east
  detect lines, and `decode` handles the replies, so keyboards agree on
  octaves and on which one plays the sound (the receiver).
- **Display**: `display_lines` returns the three text rows the display
  would show (octave, waveform, volume, echo time, held notes, Rx/Tx).

## Quick look

```python
from keysynth.board import Board, Pin
from keysynth.canbus import CanBus
from keysynth.knob import rotation_step
from keysynth.synth import Synthesizer

assert rotation_step(0, 0, 1, 0, 1) == 1
assert rotation_step(0, 0, 0, 1, 1) == -1

board = Board()
bus = CanBus(loopback=True)
synth = Synthesizer(board, bus)

synth.scan_keys()                  # record the released state of every key
board.set_input(0, Pin.C0, 0)      # press the first key (C)
synth.scan_keys()                  # the note starts playing
level = synth.sample()             # one output sample, volume-scaled, offset by 128
for line in synth.display_lines():
    print(line)
```

A typical loop calls `scan_keys` every 20 ms, `update_joystick` every
30 ms, `auto_multi_synth` every 500 ms, `process_incoming` and
`flush_outgoing` whenever the bus has traffic, and `sample` at 22 kHz.
With the in-memory `CanBus`, frames handed to it wait in its three
mailboxes until `complete_transmission` sends them; frames from another
keyboard arrive through `deliver`.

## Modules

| Module | Contents |
| --- | --- |
| `keysynth.board` | `Board`, `Pin`, `key_index` – simulated pins and key matrix |
| `keysynth.knob` | `Knob`, `rotation_step` – rotary encoders with buttons |
| `keysynth.joystick` | `Joystick` – analogue position and button |
| `keysynth.canbus` | `CanBus`, `CanMessage`, `CanError` – an in-memory CAN interface |
| `keysynth.sound` | `SoundGenerator`, `Voice`, `VoiceStatus`, `Waveform`, `get_shift`, `sine_lookup` – the voices |
| `keysynth.synth` | `Synthesizer`, `Action` – ties it all together |

## Messages between keyboards

Each message is eight bytes; the first byte names the action:

| Byte | Meaning |
| --- | --- |
| `P` | key pressed (octave, note) |
| `R` | key released (octave, note) |
| `C` | connection request with the suggested octave |
| `S` | connection accepted |
| `M` | become a transmitter at the given octave (if not yet connected) |
| `T` | the sender is now the receiver; become a transmitter |

## What it does not do

- It produces sample values but does not play them on a sound device.
- `display_lines` returns text; nothing is drawn on a screen.
- It runs no timers or threads of its own: your code decides when to
  scan, sample and move frames.
- `CanBus` is a model held in memory; it does not talk to a real bus.
- There is no command-line program.