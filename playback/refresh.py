import asyncio
import time


class RefreshScheduler:
    """
    Display refresh signal on the asyncio loop.

    request_frame() runs a callback once, on the next tick, on the loop
    thread. Callbacks receive a millisecond timestamp.
    """

    def __init__(self, rate: float = 60.0):
        if rate <= 0:
            raise ValueError("refresh rate must be > 0")
        self.rate = rate
        self.interval = 1.0 / rate

    def request_frame(self, callback):
        loop = asyncio.get_running_loop()
        return loop.call_later(self.interval, self._fire, callback)

    @staticmethod
    def _fire(callback):
        callback(time.perf_counter() * 1000.0)
