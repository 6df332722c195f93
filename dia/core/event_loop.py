"""
Single-threaded event loop for DIA.

Every controller, reply, speech and transcript callback runs on the thread
that drives this loop. Worker threads (microphone capture, transcription,
audio playback) never touch assistant state directly: they hand their
results over with `post()`.
"""
import heapq
import itertools
import time
from queue import Queue, Empty
from typing import Any, Callable, List, Optional, Tuple

from dia.core.logger import get_logger


class Timer:
    """Handle for a callback scheduled with `EventLoop.call_later`"""
    
    def __init__(self, deadline: float, callback: Callable[..., Any], args: Tuple[Any, ...]):
        self.deadline = deadline
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False
    
    def cancel(self) -> None:
        """Cancel the timer; a no-op once it has fired"""
        self.cancelled = True
    
    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class EventLoop:
    """Cooperative dispatcher with thread-safe posting and timers"""
    
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize event loop
        
        Args:
            clock: Monotonic clock in seconds (injectable for tests)
        """
        self.logger = get_logger()
        self.clock = clock
        self._queue: Queue = Queue()
        self._timers: List[Tuple[float, int, Timer]] = []
        self._seq = itertools.count()
        self._running = False
    
    def post(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue a callback for the loop thread. Safe to call from any thread."""
        self._queue.put((callback, args))
    
    def call_soon(self, callback: Callable[..., Any], *args: Any) -> None:
        """Alias of post() for callers already on the loop thread"""
        self.post(callback, *args)
    
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Timer:
        """
        Schedule a callback after `delay` seconds
        
        Must be called from the loop thread.
        """
        timer = Timer(self.clock() + max(0.0, delay), callback, args)
        heapq.heappush(self._timers, (timer.deadline, next(self._seq), timer))
        return timer
    
    def _next_timeout(self, timeout: float) -> float:
        """Shorten `timeout` so the loop wakes for the next due timer"""
        while self._timers and self._timers[0][2].cancelled:
            heapq.heappop(self._timers)
        if not self._timers:
            return timeout
        return max(0.0, min(timeout, self._timers[0][0] - self.clock()))
    
    def _invoke(self, callback: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        try:
            callback(*args)
        except Exception:
            self.logger.exception(f"[LOOP] Callback {getattr(callback, '__name__', callback)!r} raised")
    
    def _run_due_timers(self) -> int:
        ran = 0
        now = self.clock()
        while self._timers and self._timers[0][0] <= now:
            _, _, timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            timer.fired = True
            self._invoke(timer.callback, timer.args)
            ran += 1
        return ran
    
    def run_once(self, timeout: float = 0.0) -> int:
        """
        Run everything that is ready now
        
        Blocks up to `timeout` seconds waiting for the first posted callback,
        then drains the queue and fires due timers.
        
        Returns:
            Number of callbacks executed
        """
        ran = 0
        wait = self._next_timeout(timeout)
        try:
            callback, args = self._queue.get(timeout=wait) if wait > 0 else self._queue.get_nowait()
        except Empty:
            pass
        else:
            self._invoke(callback, args)
            ran += 1
        
        while True:
            try:
                callback, args = self._queue.get_nowait()
            except Empty:
                break
            self._invoke(callback, args)
            ran += 1
        
        ran += self._run_due_timers()
        return ran
    
    def run_until_idle(self, max_rounds: int = 1000) -> int:
        """Run until no callback is ready (pending future timers are left alone)"""
        total = 0
        for _ in range(max_rounds):
            ran = self.run_once(0.0)
            total += ran
            if ran == 0:
                break
        return total
    
    def run_forever(self, poll_interval: float = 0.1) -> None:
        """Run until stop() is called"""
        self._running = True
        self.logger.debug("[LOOP] Event loop started")
        while self._running:
            self.run_once(poll_interval)
        self.logger.debug("[LOOP] Event loop stopped")
    
    def stop(self) -> None:
        """Stop run_forever(). Safe to call from any thread."""
        def _halt() -> None:
            self._running = False
        self.post(_halt)
    
    @property
    def running(self) -> bool:
        return self._running
