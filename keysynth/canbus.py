"""Simulated CAN controller with filters, transmit mailboxes and a receive FIFO."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

STANDARD_ID_MASK = 0x7FF
FRAME_LENGTH = 8
TX_MAILBOXES = 3
RX_FIFO_DEPTH = 3
FILTER_BANKS = 16


class CanError(Exception):
    """Raised when the controller cannot carry out a request."""


@dataclass(frozen=True)
class CanMessage:
    """A standard-identifier data frame of eight bytes."""

    can_id: int
    data: bytes

    def __post_init__(self):
        if not 0 <= self.can_id <= STANDARD_ID_MASK:
            raise ValueError(f"standard CAN id out of range: {self.can_id:#x}")
        if len(self.data) != FRAME_LENGTH:
            raise ValueError(f"frame must hold {FRAME_LENGTH} bytes, got {len(self.data)}")


def _frame(data) -> bytes:
    payload = bytes(data)
    if len(payload) > FRAME_LENGTH:
        raise ValueError(f"frame holds at most {FRAME_LENGTH} bytes, got {len(payload)}")
    return payload.ljust(FRAME_LENGTH, b"\0")


class CanBus:
    """One CAN controller; frames reach it through deliver() and leave via sent."""

    def __init__(self, loopback: bool = False):
        self.loopback = loopback
        self._lock = threading.Lock()
        self._filters: dict[int, tuple[int, int]] = {}
        self._started = False
        self._rx: deque[CanMessage] = deque()
        self._pending: deque[CanMessage] = deque()
        self.sent: list[CanMessage] = []
        self._rx_callback: Optional[Callable[[], None]] = None
        self._tx_callback: Optional[Callable[[], None]] = None

    @property
    def started(self) -> bool:
        return self._started

    @property
    def free_mailboxes(self) -> int:
        with self._lock:
            return TX_MAILBOXES - len(self._pending)

    def set_filter(self, filter_id: int = 0, mask_id: int = 0, filter_bank: int = 0) -> None:
        """Accept frames whose id matches filter_id on the bits set in mask_id."""
        with self._lock:
            bank = filter_bank & (FILTER_BANKS - 1)
            self._filters[bank] = (filter_id & STANDARD_ID_MASK, mask_id & STANDARD_ID_MASK)

    def start(self) -> None:
        with self._lock:
            if self._started:
                raise CanError("controller already started")
            self._started = True

    def transmit(self, can_id: int, data) -> None:
        """Place a frame in a free mailbox; short payloads are padded with zeros."""
        message = CanMessage(can_id & STANDARD_ID_MASK, _frame(data))
        with self._lock:
            if not self._started:
                raise CanError("controller not started")
            if len(self._pending) >= TX_MAILBOXES:
                raise CanError("no free transmit mailbox")
            self._pending.append(message)

    def complete_transmission(self) -> CanMessage:
        """Send the oldest pending frame, freeing its mailbox."""
        with self._lock:
            if not self._pending:
                raise CanError("no frame awaiting transmission")
            message = self._pending.popleft()
            self.sent.append(message)
            callback = self._tx_callback
        if self.loopback:
            self._accept(message)
        if callback:
            callback()
        return message

    def rx_level(self) -> int:
        with self._lock:
            return len(self._rx)

    def receive(self) -> CanMessage:
        with self._lock:
            if not self._rx:
                raise CanError("receive FIFO empty")
            return self._rx.popleft()

    def deliver(self, can_id: int, data) -> bool:
        """Offer a frame from the bus; return whether the filters accepted it."""
        return self._accept(CanMessage(can_id & STANDARD_ID_MASK, _frame(data)))

    def on_receive(self, callback: Optional[Callable[[], None]]) -> None:
        with self._lock:
            self._rx_callback = callback

    def on_transmit(self, callback: Optional[Callable[[], None]]) -> None:
        with self._lock:
            self._tx_callback = callback

    def _matches(self, can_id: int) -> bool:
        return any((can_id & mask) == (fid & mask) for fid, mask in self._filters.values())

    def _accept(self, message: CanMessage) -> bool:
        with self._lock:
            if not self._started or not self._matches(message.can_id):
                return False
            if len(self._rx) >= RX_FIFO_DEPTH:
                self._rx[-1] = message
            else:
                self._rx.append(message)
            callback = self._rx_callback
        if callback:
            callback()
        return True