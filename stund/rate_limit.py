"""
A single global gate in front of the server. Every datagram
is counted in a sliding window regardless of who sent it. If
the count goes over the limit the gate closes for a fixed
cooldown and everything is dropped until it reopens.

The reopen is scheduled on the event loop so it happens even
if no more traffic arrives. The expiry time is also checked
at the top of check() so the state is a function of
(state, now) when there's no loop (e.g. in tests.)
"""

import time
from collections import deque
from .utils import *
from .errors import *

class RateLimiter():
    def __init__(self, max_requests, time_window, pause_duration, loop=None, clock=time.monotonic):
        if max_requests <= 0:
            raise ErrorInvalidConf("max_requests must be greater than 0")
        if time_window <= 0:
            raise ErrorInvalidConf("time_window must be greater than 0")
        if pause_duration <= 0:
            raise ErrorInvalidConf("pause_duration must be greater than 0")

        # Limits. Durations are in seconds.
        self.max_requests = max_requests
        self.time_window = time_window
        self.pause_duration = pause_duration

        # Times of admitted requests in the window, oldest first.
        self.timestamps = deque()
        self.paused = False
        self.pause_expiry = None

        # Handle for the scheduled resume.
        self.resume_handle = None
        self.loop = loop
        self.clock = clock

    def _now(self, now):
        return self.clock() if now is None else now

    # Apply a resume that's due but hasn't fired yet.
    def _expire(self, now):
        if self.paused and now >= self.pause_expiry:
            self.resume()

    def check(self, now=None) -> bool:
        now = self._now(now)
        self._expire(now)
        if self.paused:
            return False

        # Prune old timestamps.
        while len(self.timestamps):
            if now - self.timestamps[0] < self.time_window:
                break

            self.timestamps.popleft()

        # The request that goes over the limit is dropped too.
        self.timestamps.append(now)
        if len(self.timestamps) > self.max_requests:
            self.trigger_pause(now)
            return False

        return True

    def trigger_pause(self, now):
        self.paused = True
        self.pause_expiry = now + self.pause_duration
        log(f"Rate limit exceeded. Pausing for {self.pause_duration}s.")

        # Schedule the resume if there's a loop to do it.
        loop = self.loop or get_running_loop()
        if loop is not None:
            self.resume_handle = loop.call_later(
                self.pause_duration,
                self.resume
            )

    def resume(self):
        if self.resume_handle is not None:
            self.resume_handle.cancel()
            self.resume_handle = None

        self.timestamps.clear()
        self.paused = False
        self.pause_expiry = None
        log("Resuming after pause.")

    def is_paused(self, now=None) -> bool:
        self._expire(self._now(now))
        return self.paused

    def count(self, now=None) -> int:
        self._expire(self._now(now))
        return len(self.timestamps)

    def close(self):
        if self.resume_handle is not None:
            self.resume_handle.cancel()
            self.resume_handle = None
