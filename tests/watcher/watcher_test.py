import logging
import queue
import socket
import threading
import time

import pytest
from frames import tcp4, udp4, udp6

from arkade.watcher import CaptureError, PortInfo, PortWatcher, WatcherError


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeCapture:
    """
    Frames written with `inject()` come out of `read()`, the read end of a
    datagram socket pair stands in for the capture descriptor.
    """

    def __init__(self, interface: str) -> None:
        self.interface = interface
        self._rsock, self._wsock = socket.socketpair(socket.AF_UNIX, socket.SOCK_DGRAM)
        self._rsock.setblocking(False)
        self.opened = False
        self.closed = False
        self.read_errors = 0
        self.open_error: Exception | None = None

    def inject(self, frame: bytes) -> None:
        self._wsock.send(frame)

    def open(self) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    def fileno(self) -> int:
        return self._rsock.fileno()

    def read(self) -> list[bytes]:
        if self.read_errors:
            self.read_errors -= 1
            raise OSError("network is down")

        frames = []
        while True:
            try:
                frames.append(self._rsock.recv(65535))
            except BlockingIOError:
                break
        return frames

    def close(self) -> None:
        self.closed = True
        self._rsock.close()
        self._wsock.close()


GAME: PortInfo = PortInfo.tcp(25565)
SENTINEL: PortInfo = PortInfo.udp(9999)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def capture(interface: str) -> FakeCapture:
    return FakeCapture(interface)


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_unknown_interface() -> None:
    with pytest.raises(WatcherError, match="no such interface"):
        PortWatcher("arkade-nonexistent0")


@pytest.mark.parametrize("window", [0, -1.0])
def test_invalid_window(interface: str, window: float) -> None:
    with pytest.raises(ValueError):
        PortWatcher(interface, window)


def test_watch_unwatch(interface: str) -> None:
    w = PortWatcher(interface)
    assert w.state == "idle"
    assert w.watched == []

    w.watch_all([PortInfo.udp(34197), GAME])
    assert w.watched == [GAME, PortInfo.udp(34197)]
    assert w.is_watched(GAME)
    assert not w.is_watched(PortInfo.udp(25565))

    w.unwatch(GAME)
    assert not w.is_watched(GAME)
    assert w.watched == [PortInfo.udp(34197)]


def test_one_event_per_window(interface: str, clock: FakeClock) -> None:
    w = PortWatcher(interface, 1.0, clock=clock)
    w.watch(GAME)

    events = []
    for _ in range(50):
        clock.now += 0.01
        info = w.feed(tcp4(25565))
        if info is not None:
            events.append(info)

    assert events == [GAME]


@pytest.mark.parametrize("second, expected", [
    (0.9, [GAME]),
    (1.1, [GAME, GAME]),
])
def test_window_boundary(interface: str, clock: FakeClock, second: float,
                         expected: list[PortInfo]) -> None:
    w = PortWatcher(interface, 1.0, clock=clock)
    w.watch(GAME)

    events = []
    for t in (0.1, second):
        clock.now = t
        info = w.feed(tcp4(25565))
        if info is not None:
            events.append(info)

    assert events == expected


def test_ports_reported_independently(interface: str, clock: FakeClock) -> None:
    w = PortWatcher(interface, 1.0, clock=clock)
    w.watch_all([GAME, PortInfo.udp(25565), PortInfo.udp(53)])

    assert w.feed(tcp4(25565)) == GAME
    assert w.feed(udp4(25565)) == PortInfo.udp(25565)
    assert w.feed(udp6(53)) == PortInfo.udp(53)
    assert w.feed(udp4(53)) is None


def test_unwatched_never_reported(interface: str, clock: FakeClock) -> None:
    w = PortWatcher(interface, 1.0, clock=clock)
    w.watch(GAME)

    for t in range(5):
        clock.now = t * 2.0
        assert w.feed(tcp4(80)) is None
        assert w.feed(udp4(25565)) is None

    assert not w.is_reported(PortInfo.tcp(80))


def test_undecodable_frames_ignored(interface: str, clock: FakeClock) -> None:
    w = PortWatcher(interface, 1.0, clock=clock)
    w.watch(GAME)

    assert w.feed(b"") is None
    assert w.feed(tcp4(25565)[:40]) is None
    assert w.feed(tcp4(25565)) == GAME


def test_unwatch_keeps_reported_until_rollover(interface: str, clock: FakeClock) -> None:
    w = PortWatcher(interface, 1.0, clock=clock)
    w.watch(GAME)

    clock.now = 0.1
    assert w.feed(tcp4(25565)) == GAME

    w.unwatch(GAME)
    assert w.is_reported(GAME)

    w.watch(GAME)
    clock.now = 0.5
    assert w.feed(tcp4(25565)) is None

    clock.now = 1.0
    assert w.feed(tcp4(25565)) == GAME


def test_rollover_never_touches_watch(interface: str, clock: FakeClock) -> None:
    w = PortWatcher(interface, 1.0, clock=clock)
    w.watch(GAME)

    clock.now = 10.0
    w.feed(b"")

    assert w.watched == [GAME]


def test_run_threaded(interface: str, capture: FakeCapture) -> None:
    w = PortWatcher(interface, 60.0, capture_factory=lambda _: capture)
    w.watch_all([GAME, SENTINEL])

    events: queue.Queue[PortInfo] = queue.Queue()
    w.run(events.put, threaded=True)

    try:
        assert w.is_active()
        assert capture.opened

        for _ in range(10):
            capture.inject(tcp4(25565))
        capture.inject(tcp4(80))
        capture.inject(udp4(9999))

        assert events.get(timeout=5) == GAME
        assert events.get(timeout=5) == SENTINEL
        assert events.empty()
    finally:
        w.stop(timeout=5)

    assert w.state == "stopped"
    assert not w.is_active()
    assert capture.closed


def test_run_blocking_stops_from_callback(interface: str, capture: FakeCapture) -> None:
    w = PortWatcher(interface, 60.0, capture_factory=lambda _: capture)
    w.watch(GAME)

    events = []

    def callback(info: PortInfo) -> None:
        events.append(info)
        w.stop()

    capture.inject(tcp4(25565))
    w.run(callback)

    assert events == [GAME]
    assert w.state == "stopped"
    assert capture.closed


def test_callback_error_propagates(interface: str, capture: FakeCapture) -> None:
    w = PortWatcher(interface, 60.0, capture_factory=lambda _: capture)
    w.watch(GAME)

    def callback(info: PortInfo) -> None:
        raise RuntimeError("consumer failed")

    capture.inject(tcp4(25565))

    with pytest.raises(RuntimeError, match="consumer failed"):
        w.run(callback)

    assert capture.closed
    assert w.state == "stopped"


def test_callback_error_propagates_threaded(interface: str, capture: FakeCapture) -> None:
    w = PortWatcher(interface, 60.0, capture_factory=lambda _: capture)
    w.watch(GAME)

    def callback(info: PortInfo) -> None:
        raise RuntimeError("consumer failed")

    w.run(callback, threaded=True)
    capture.inject(tcp4(25565))

    assert wait_for(lambda: not w.is_active())

    with pytest.raises(RuntimeError, match="consumer failed"):
        w.stop(timeout=5)

    assert capture.closed


def test_read_errors_are_logged(interface: str, capture: FakeCapture,
                                caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="arkade.watcher.watcher")

    w = PortWatcher(interface, 60.0, capture_factory=lambda _: capture)
    w.watch(GAME)

    capture.read_errors = 1
    capture.inject(tcp4(25565))

    events: queue.Queue[PortInfo] = queue.Queue()
    w.run(events.put, threaded=True)

    try:
        assert events.get(timeout=5) == GAME
    finally:
        w.stop(timeout=5)

    assert "network is down" in caplog.text


@pytest.mark.parametrize("error, expected", [
    (CaptureError("device 'eth9' does not exist"), "does not exist"),
    (PermissionError("operation not permitted"), "operation not permitted"),
])
def test_open_failure(interface: str, capture: FakeCapture, error: Exception,
                      expected: str) -> None:
    capture.open_error = error
    w = PortWatcher(interface, capture_factory=lambda _: capture)
    w.watch(GAME)

    events = []
    with pytest.raises(WatcherError, match=expected):
        w.run(events.append)

    assert events == []
    assert w.state == "idle"
    capture.close()


def test_run_twice(interface: str, capture: FakeCapture) -> None:
    w = PortWatcher(interface, 60.0, capture_factory=lambda _: capture)
    w.run(lambda info: None, threaded=True)

    try:
        with pytest.raises(WatcherError, match="already running"):
            w.run(lambda info: None)
    finally:
        w.stop(timeout=5)


def test_stop_before_run(interface: str) -> None:
    w = PortWatcher(interface)
    w.stop()
    assert w.state == "idle"


def test_stop_while_opening(interface: str, capture: FakeCapture) -> None:
    w = PortWatcher(interface, 60.0, capture_factory=lambda _: capture)
    w.watch(GAME)

    open_capture = capture.open

    def open_and_stop() -> None:
        w.stop()
        open_capture()

    capture.open = open_and_stop  # type: ignore[method-assign]

    done = threading.Event()

    def run() -> None:
        w.run(lambda info: None)
        done.set()

    t = threading.Thread(target=run, daemon=True)
    t.start()
    t.join(timeout=5)

    assert done.is_set()
    assert w.state == "stopped"
    assert capture.closed


def test_run_after_stop_while_opening(interface: str, capture: FakeCapture) -> None:
    second = FakeCapture(interface)
    captures = iter([capture, second])
    w = PortWatcher(interface, 60.0, capture_factory=lambda _: next(captures))
    w.watch(GAME)

    open_capture = capture.open

    def open_and_stop() -> None:
        w.stop()
        open_capture()

    capture.open = open_and_stop  # type: ignore[method-assign]
    w.run(lambda info: None)

    assert w.state == "stopped"

    # The stop request is used up, the next loop runs until stopped again
    events: queue.Queue[PortInfo] = queue.Queue()
    w.run(events.put, threaded=True)

    try:
        second.inject(tcp4(25565))
        assert events.get(timeout=5) == GAME
    finally:
        w.stop(timeout=5)
