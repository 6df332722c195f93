"""
Connectivity state for DIA.

The assistant only needs one boolean: online or offline. The monitor keeps
it, notifies listeners when it flips, and can optionally run a probe thread
that checks a URL and reports the result through the event loop.
"""
import threading
import urllib.error
import urllib.request
from typing import Callable, List, Optional

from dia.core.config import Config
from dia.core.event_loop import EventLoop
from dia.core.logger import get_logger


class ConnectivityMonitor:
    """Online/offline flag with change notification"""

    def __init__(
        self,
        loop: EventLoop,
        online: bool = True,
        probe_url: str = Config.CONNECTIVITY_PROBE_URL,
        probe_interval: float = Config.CONNECTIVITY_PROBE_INTERVAL_SEC,
        probe_timeout: float = Config.CONNECTIVITY_PROBE_TIMEOUT_SEC
    ):
        self.logger = get_logger()
        self.loop = loop
        self._online = online
        self._listeners: List[Callable[[bool], None]] = []
        self.probe_url = probe_url
        self.probe_interval = probe_interval
        self.probe_timeout = probe_timeout
        self._stop_probe: Optional[threading.Event] = None

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        """Register a listener; returns a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        """Update the flag (loop thread only); listeners hear about changes only"""
        if online == self._online:
            return
        self._online = online
        self.logger.info(f"[NET] Connectivity changed: {'online' if online else 'offline'}")
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception:
                self.logger.exception("[NET] Connectivity listener failed")

    # ------------------------------------------------------------------ #
    # Probe
    # ------------------------------------------------------------------ #
    def probe(self) -> bool:
        """One blocking reachability check of the probe URL"""
        try:
            with urllib.request.urlopen(self.probe_url, timeout=self.probe_timeout):
                return True
        except urllib.error.HTTPError:
            # Server answered, so the network is up
            return True
        except (urllib.error.URLError, OSError, ValueError) as e:
            self.logger.debug(f"[NET] Probe failed: {e}")
            return False

    def start_probe(self) -> None:
        """Check connectivity periodically on a background thread"""
        if self._stop_probe is not None:
            return
        stop = threading.Event()
        self._stop_probe = stop

        def run() -> None:
            while not stop.is_set():
                self.loop.post(self.set_online, self.probe())
                stop.wait(self.probe_interval)

        threading.Thread(target=run, name="ConnectivityProbe", daemon=True).start()

    def stop_probe(self) -> None:
        if self._stop_probe is not None:
            self._stop_probe.set()
            self._stop_probe = None
