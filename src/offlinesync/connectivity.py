"""Connectivity oracle.

This module provides:
- ConnectivityEvent: online/offline transition events
- ConnectivityMonitor: Current reachability plus transition subscriptions
- HealthProbe: Feeds the monitor from the remote store's health endpoint

is_online() answers "may we attempt a remote call right now". It reflects
the reachability signal only: a call can still fail while online, and
every caller handles that.

Background sync:
    register_background_sync() asks for a one-shot callback on the next
    online transition. It is best effort with no completion signal back to
    the caller, so nothing may depend on it firing.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class ConnectivityEvent(str, Enum):
    """Reachability transition."""

    ONLINE = "online"
    OFFLINE = "offline"


ConnectivityListener = Callable[[ConnectivityEvent], None]


class ConnectivityMonitor:
    """Holds the current online/offline status and fans out transitions.

    The platform (or a HealthProbe) reports reachability via set_online().
    Listeners are only called when the status actually changes.
    """

    def __init__(self, online: bool = True) -> None:
        """Initialize the monitor.

        Args:
            online: Initial status.
        """
        self._online = online
        self._lock = threading.RLock()
        self._listeners: list[ConnectivityListener] = []
        self._background: dict[str, Callable[[], None]] = {}

    def is_online(self) -> bool:
        """Check current reachability (non-blocking)."""
        return self._online

    def set_online(self, online: bool) -> None:
        """Report the platform's reachability signal.

        Args:
            online: True when the network is reachable.
        """
        with self._lock:
            if online == self._online:
                return
            self._online = online
            listeners = list(self._listeners)
            background: dict[str, Callable[[], None]] = {}
            if online:
                background, self._background = self._background, {}

        event = ConnectivityEvent.ONLINE if online else ConnectivityEvent.OFFLINE
        logger.info("Connectivity changed: %s", event.value)

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Connectivity listener failed on %s", event.value)

        for tag, callback in background.items():
            self._fire_background(tag, callback)

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register a transition listener.

        Returns:
            A callable that unsubscribes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def register_background_sync(self, tag: str, callback: Callable[[], None]) -> None:
        """Request a one-shot callback on the next online transition.

        Registering the same tag twice keeps a single pending callback.
        The callback runs on a daemon thread; failures are only logged.
        """
        with self._lock:
            self._background[tag] = callback
        logger.debug("Background sync registered: %s", tag)

    def pending_background_tags(self) -> list[str]:
        """Get tags still waiting for the next online transition."""
        with self._lock:
            return sorted(self._background)

    def _fire_background(self, tag: str, callback: Callable[[], None]) -> None:
        def run() -> None:
            logger.info("Background sync: %s", tag)
            try:
                callback()
            except Exception:
                logger.exception("Background sync %s failed", tag)

        thread = threading.Thread(target=run, name=f"background-sync-{tag}", daemon=True)
        thread.start()


class SupportsHealthCheck(Protocol):
    """Anything exposing a boolean health check."""

    def health_check(self) -> bool:
        """Return True if the remote store answers."""
        ...


class HealthProbe:
    """Polls a health endpoint and reports the result to a monitor.

    This is the reachability signal for processes without a platform
    network-change event.

    Usage:
        probe = HealthProbe(remote, monitor, interval=5.0)
        probe.start()
        ...
        probe.stop()
    """

    def __init__(
        self,
        target: SupportsHealthCheck,
        monitor: ConnectivityMonitor,
        interval: float = 5.0,
    ) -> None:
        """Initialize the probe.

        Args:
            target: Object whose health_check() decides reachability.
            monitor: Monitor receiving set_online() updates.
            interval: Seconds between checks.
        """
        self._target = target
        self._monitor = monitor
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        """Check if the probe thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def check_now(self) -> bool:
        """Run one health check and report it.

        Returns:
            The reachability that was reported.
        """
        try:
            online = bool(self._target.health_check())
        except Exception as e:
            logger.debug("Health check raised: %s", e)
            online = False
        self._monitor.set_online(online)
        return online

    def start(self) -> None:
        """Start polling in a background thread."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="health-probe", daemon=True)
        self._thread.start()
        logger.debug("Health probe started (every %.1fs)", self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop polling."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.debug("Health probe stopped")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.check_now()
            self._stop_event.wait(self._interval)
