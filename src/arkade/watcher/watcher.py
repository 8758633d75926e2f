"""
Turn the packet stream seen on an interface into rate limited port activity
events.
"""


import logging
import selectors
import socket
import threading
import time
from collections.abc import Callable, Iterable
from typing import Final, Literal, Protocol

from arkade.watcher.decode import decode
from arkade.watcher.errors import CaptureError, WatcherError
from arkade.watcher.ports import PortInfo
from arkade.watcher.portset import PortTable

__all__ = [
    "DEFAULT_WINDOW",
    "Capture",
    "PortWatcher",
]


logger = logging.getLogger(__name__)


# Seconds after which ports that were already reported may be reported again
DEFAULT_WINDOW: Final = 5.0


class Capture(Protocol):
    def open(self) -> None: ...

    def fileno(self) -> int: ...

    def read(self) -> list[bytes]: ...

    def close(self) -> None: ...


def _default_capture(interface: str) -> Capture:
    # libpcap is only loaded once a capture is actually needed
    from arkade.watcher.capture import LiveCapture

    return LiveCapture(interface)


class PortWatcher:
    """
    Watch an interface for traffic destined to a set of ports.

    Every port that is watched is reported at most once per aggregation
    window, no matter how many frames arrive for it. Once the window elapses
    every port may be reported again.
    """

    def __init__(
            self,
            interface: str,
            window: float = DEFAULT_WINDOW,
            *,
            capture_factory: Callable[[str], Capture] | None = None,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Parameters
        ----------
        interface : str
            Name of the interface to capture on.

        window : float
            Length of the aggregation window in seconds. (default: 5.0)

        capture_factory : Callable[[str], Capture] | None
            Called with the interface name when the loop starts, returns the
            capture to read frames from. (default: libpcap live capture)

        clock : Callable[[], float]
            Monotonic time source in seconds. (default: time.monotonic)

        Raises
        ------
        WatcherError
            If the interface does not exist.

        ValueError
            If the window is not positive.
        """
        if window <= 0:
            raise ValueError(f"window must be positive, got: {window}")

        try:
            self.if_index = socket.if_nametoindex(interface)
        except (OSError, ValueError) as e:
            raise WatcherError(f"no such interface: '{interface}': {e}") from e

        self.interface = interface
        self.window = float(window)

        self._capture_factory = capture_factory or _default_capture
        self._clock = clock

        # Ports of interest, shared with callers
        self._watch = PortTable()
        self._lock = threading.Lock()

        # Ports already reported in the current window, owned by the loop
        self._reported = PortTable()
        self._timestamp = self._clock()

        self._state: Literal["idle", "capturing", "stopped"] = "idle"
        self._stop_event = threading.Event()
        self._wakeup: tuple[socket.socket, socket.socket] | None = None
        self._capture: Capture | None = None
        self._thread: threading.Thread | None = None
        self._error: BaseException | None = None

    def watch(self, info: PortInfo, /) -> None:
        with self._lock:
            self._watch.set(info)

    def unwatch(self, info: PortInfo, /) -> None:
        # A pending reported bit is left alone, it goes away on rollover
        with self._lock:
            self._watch.set(info, False)

    def watch_all(self, infos: Iterable[PortInfo], /) -> None:
        with self._lock:
            for info in infos:
                self._watch.set(info)

    def is_watched(self, info: PortInfo, /) -> bool:
        with self._lock:
            return self._watch.test(info)

    def is_reported(self, info: PortInfo, /) -> bool:
        return self._reported.test(info)

    @property
    def watched(self) -> list[PortInfo]:
        with self._lock:
            return sorted(self._watch)

    @property
    def state(self) -> str:
        return self._state

    def is_active(self) -> bool:
        return self._state == "capturing"

    def _rollover(self) -> None:
        now = self._clock()
        if now - self._timestamp >= self.window:
            if self._reported.count():
                logger.debug("%s: window elapsed, clearing %d reported port(s)",
                             self.interface, self._reported.count())
            self._reported.reset()
            self._timestamp = now

    def _remaining(self) -> float:
        return max(0.0, self.window - (self._clock() - self._timestamp))

    def feed(self, frame: bytes, /) -> PortInfo | None:
        """
        Process a single captured frame.

        Parameters
        ----------
        frame : bytes
            Raw Ethernet frame.

        Returns
        -------
        PortInfo | None
            The port to report, or None if the frame is not for a watched
            port or the port was already reported in the current window.
        """
        self._rollover()

        info = decode(frame)
        if info is None:
            return None

        with self._lock:
            watched = self._watch.test(info)

        if not watched:
            return None

        if self._reported.test(info):
            logger.debug("%s: %s already reported in this window", self.interface, info)
            return None

        self._reported.set(info)
        return info

    def run(
            self,
            callback: Callable[[PortInfo], None],
            threaded: bool = False,
    ) -> None:
        """
        Open the capture and report port activity until stopped.

        Parameters
        ----------
        callback : Callable[[PortInfo], None]
            Called on the loop thread for every reported port. Exceptions it
            raises end the loop and are propagated.

        threaded : bool
            Whether to run the loop in a separate thread. If this is set, the
            `stop()` method has to be called to stop and clean up the thread.
            (default: False)

        Raises
        ------
        WatcherError
            If the watcher is already running or the capture could not be
            opened. Nothing is reported in that case.
        """
        if self._state == "capturing":
            raise WatcherError(f"watcher on '{self.interface}' is already running")

        capture = self._capture_factory(self.interface)

        try:
            capture.open()
        except OSError as e:
            raise CaptureError(f"failed to open capture on '{self.interface}': {e}") from e

        self._capture = capture

        rsock, wsock = socket.socketpair()
        rsock.setblocking(False)
        wsock.setblocking(False)
        self._wakeup = (rsock, wsock)

        self._error = None
        self._timestamp = self._clock()
        self._state = "capturing"

        logger.info("watching %s on %s (window %.2fs)",
                    ",".join(str(info) for info in self.watched) or "nothing",
                    self.interface, self.window)

        if threaded:
            self._thread = threading.Thread(target=self._loop_threaded,
                                            args=(callback,),
                                            name=f"watcher-{self.interface}",
                                            daemon=True)
            self._thread.start()
        else:
            self._loop(callback)

    def _loop_threaded(self, callback: Callable[[PortInfo], None]) -> None:
        try:
            self._loop(callback)
        except BaseException as e:
            # Re-raised by `stop()`
            self._error = e
            logger.error("%s: watcher loop failed: %s", self.interface, e)

    def _loop(self, callback: Callable[[PortInfo], None]) -> None:
        assert self._capture is not None and self._wakeup is not None

        try:
            with selectors.DefaultSelector() as sel:
                sel.register(self._capture.fileno(), selectors.EVENT_READ, "capture")
                sel.register(self._wakeup[0], selectors.EVENT_READ, "wakeup")

                while not self._stop_event.is_set():
                    events = sel.select(self._remaining())

                    self._rollover()

                    for key, _ in events:
                        if key.data == "wakeup":
                            self._drain_wakeup()
                        elif not self._stop_event.is_set():
                            self._on_readable(callback)
        finally:
            self._teardown()

    def _on_readable(self, callback: Callable[[PortInfo], None]) -> None:
        assert self._capture is not None

        try:
            frames = self._capture.read()
        except (OSError, CaptureError) as e:
            logger.warning("%s: failed to read from capture: %s", self.interface, e)
            return

        if not frames:
            logger.debug("%s: woke up with nothing to read", self.interface)
            return

        for frame in frames:
            info = self.feed(frame)
            if info is None:
                continue

            logger.info("%s: activity on %s", self.interface, info)
            callback(info)

    def _drain_wakeup(self) -> None:
        assert self._wakeup is not None

        try:
            while self._wakeup[0].recv(64):
                pass
        except BlockingIOError:
            pass

    def _teardown(self) -> None:
        capture, self._capture = self._capture, None
        wakeup, self._wakeup = self._wakeup, None

        try:
            if capture is not None:
                capture.close()
        finally:
            if wakeup is not None:
                for sock in wakeup:
                    sock.close()
            # Stop requests made while the capture was opening end up here too
            self._stop_event.clear()
            self._state = "stopped"

    def stop(self, timeout: float | None = None) -> None:
        """
        Stop the loop, close the capture and join the loop thread if any.

        Parameters
        ----------
        timeout : float | None
            Seconds to wait for the loop thread. (default: wait forever)

        Raises
        ------
        BaseException
            Whatever ended a threaded loop, e.g. an exception raised by the
            callback.
        """
        self._stop_event.set()

        wakeup = self._wakeup
        if wakeup is not None:
            try:
                wakeup[1].send(b"\0")
            except OSError:
                # Full or already closed, the loop is waking up either way
                pass

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if not thread.is_alive():
                self._thread = None

        if self._error is not None:
            error, self._error = self._error, None
            raise error
