import math
import time
from threading import Lock


class RateLimiter:
    """
    In-memory sliding window limiter: {key: [timestamp, ...]}

    At most `max_requests` accepted requests per key within the trailing
    `window_seconds`. Rejected requests are not recorded, so a caller that
    keeps hammering is re-admitted as soon as its oldest accepted request
    leaves the window.
    """

    def __init__(self, max_requests=10, window_seconds=60, clock=None):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._history = {}
        self._lock = Lock()

    def _cleanup(self, key, now):
        cutoff = now - self.window_seconds
        if key in self._history:
            self._history[key] = [t for t in self._history[key] if t > cutoff]
            if not self._history[key]:
                del self._history[key]

    def allow(self, key):
        """Record the attempt and return True if `key` is under its limit, else False"""
        if self.max_requests <= 0:
            return False

        with self._lock:
            now = self._clock()
            self._cleanup(key, now)
            timestamps = self._history.setdefault(key, [])
            if len(timestamps) >= self.max_requests:
                return False
            timestamps.append(now)
            return True

    def retry_after(self, key):
        """Seconds until `key` may make another request (0 if it can right now)"""
        with self._lock:
            now = self._clock()
            self._cleanup(key, now)
            timestamps = self._history.get(key, [])
            if len(timestamps) < self.max_requests:
                return 0
            if not timestamps:
                return self.window_seconds
            return max(0, math.ceil(timestamps[0] + self.window_seconds - now))

    def remaining(self, key):
        with self._lock:
            self._cleanup(key, self._clock())
            return max(0, self.max_requests - len(self._history.get(key, [])))

    def reset(self):
        with self._lock:
            self._history.clear()


def get_client_ip(request, trust_proxy=False):
    """Caller identity for rate limiting: the socket peer, or the first X-Forwarded-For hop behind a proxy"""
    if trust_proxy:
        forwarded = request.headers.get('X-Forwarded-For')
        if forwarded:
            return forwarded.split(',')[0].strip()
        if request.headers.get('X-Real-IP'):
            return request.headers.get('X-Real-IP')
    return request.remote_addr or 'unknown'
