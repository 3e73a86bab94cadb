"""
Countdown that fires an action unless the customer interrupts it first.

Drives the order confirmation page: after five one-second ticks the share
link opens on its own. ``complete_now`` fires the action straight away,
``cancel`` stops the timer and leaves the page idle.
"""

import threading

RUNNING = "running"
FIRED = "fired"
CANCELLED = "cancelled"


class RedirectCountdown:
    def __init__(self, on_fire, seconds=5, interval=1.0, on_tick=None):
        if seconds < 1:
            raise ValueError("seconds must be at least 1")
        self.on_fire = on_fire
        self.on_tick = on_tick
        self.seconds = seconds
        self.remaining = seconds
        self.interval = interval
        self.state = RUNNING
        self._lock = threading.Lock()
        self._stop = threading.Event()

    @property
    def is_active(self):
        return self.state == RUNNING

    def tick(self):
        """Advance one second; fires automatically when the count reaches zero."""
        with self._lock:
            if self.state != RUNNING:
                return False
            self.remaining -= 1
            remaining = self.remaining
            if remaining <= 0:
                self.state = FIRED
        if remaining > 0:
            if self.on_tick is not None:
                self.on_tick(remaining)
            return False
        self._stop.set()
        self.on_fire(True)
        return True

    def complete_now(self):
        """User asked to share right away."""
        with self._lock:
            if self.state != RUNNING:
                return False
            self.state = FIRED
        self._stop.set()
        self.on_fire(False)
        return True

    def cancel(self):
        """User will share manually: stop without firing."""
        with self._lock:
            if self.state != RUNNING:
                return False
            self.state = CANCELLED
        self._stop.set()
        return True

    def run(self):
        """Tick every ``interval`` seconds until fired or cancelled."""
        while not self._stop.wait(self.interval):
            if self.tick() or not self.is_active:
                break
