from __future__ import annotations

from typing import Callable, Optional

# USB scanners "type" the whole code in a few milliseconds and finish with Enter.
MAX_GAP_MS = 60
MIN_LENGTH = 4

ENTER_KEYS = {"Return", "KP_Enter"}


class ScanBuffer:
    """Collects key presses and yields a token when a fast burst ends with Enter.

    Slow typing resets the buffer so a cashier typing in a search box does not
    trigger a scan.
    """

    def __init__(self, max_gap_ms: int = MAX_GAP_MS, min_length: int = MIN_LENGTH):
        self.max_gap_ms = max_gap_ms
        self.min_length = min_length
        self._chars: list[str] = []
        self._last_ms: Optional[int] = None

    @property
    def pending(self) -> str:
        return "".join(self._chars)

    def reset(self) -> None:
        self._chars.clear()
        self._last_ms = None

    def completes_scan(self, time_ms: int) -> bool:
        """True when an Enter at ``time_ms`` would end a scanner burst."""
        if self._last_ms is None or time_ms - self._last_ms > self.max_gap_ms:
            return False
        return len(self.pending.strip()) >= self.min_length

    def feed(self, char: str, time_ms: int, enter: bool = False) -> Optional[str]:
        if self._last_ms is not None and time_ms - self._last_ms > self.max_gap_ms:
            self._chars.clear()
        self._last_ms = time_ms

        if enter:
            token = self.pending.strip()
            self.reset()
            return token if len(token) >= self.min_length else None

        if char and len(char) == 1 and char.isprintable():
            self._chars.append(char)
        return None


class KeyboardWedgeCapture:
    def __init__(self, widget, max_gap_ms: int = MAX_GAP_MS, min_length: int = MIN_LENGTH):
        self.widget = widget
        self.buffer = ScanBuffer(max_gap_ms=max_gap_ms, min_length=min_length)

    def open(self, on_token: Callable[[str], None]) -> Callable[[], None]:
        """Start listening; returns a function that stops it."""

        def on_key(event):
            token = self.buffer.feed(event.char, int(event.time), enter=event.keysym in ENTER_KEYS)
            if token:
                on_token(token)
                return "break"
            return None

        funcid = self.widget.bind("<Key>", on_key, add="+")
        closed = False

        def close() -> None:
            nonlocal closed
            if closed:
                return
            closed = True
            self.widget.unbind("<Key>", funcid)
            self.buffer.reset()

        return close
