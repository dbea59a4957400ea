import socket
import threading

import pytest

from iotdrive.interfaces import FdMode
from iotdrive.reactor import Listener, Reactor, SelectListener


class ScriptedListener(Listener):
    def __init__(self, rounds):
        self.rounds = list(rounds)
        self.seen = []
        self.reactor = None

    def listen(self, fds):
        self.seen.append(list(fds))
        if not self.rounds:
            self.reactor.stop()
            return []
        return self.rounds.pop(0)


class _StoppingReader:
    def __init__(self, sock, reactor):
        self.sock = sock
        self.reactor = reactor
        self.received = []

    def __call__(self, fd, mode):
        self.received.append(self.sock.recv(100))
        self.reactor.stop()


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


def test_dispatches_ready_pairs_to_handlers():
    listener = ScriptedListener([[(3, FdMode.READ)], [(5, FdMode.WRITE), (3, FdMode.READ)]])
    reactor = Reactor(listener)
    listener.reactor = reactor
    calls = []
    reactor.register(5, FdMode.WRITE, lambda fd, mode: calls.append((fd, mode)))
    reactor.register(3, FdMode.READ, lambda fd, mode: calls.append((fd, mode)))
    reactor.run()
    assert calls == [(3, FdMode.READ), (5, FdMode.WRITE), (3, FdMode.READ)]
    assert listener.seen[0] == [(3, FdMode.READ), (5, FdMode.WRITE)]


def test_unregistered_handler_is_not_called():
    listener = ScriptedListener([[(3, FdMode.READ)]])
    reactor = Reactor(listener)
    listener.reactor = reactor
    calls = []
    reactor.register(3, FdMode.READ, lambda fd, mode: calls.append(fd))
    reactor.unregister(3, FdMode.READ)
    reactor.unregister(9, FdMode.WRITE)
    reactor.run()
    assert calls == []
    assert listener.seen[0] == []


def test_reads_socket_data_and_stops_from_handler(pair):
    a, b = pair
    reactor = Reactor(SelectListener(timeout=0.05))
    handler = _StoppingReader(a, reactor)
    reactor.register(a.fileno(), FdMode.READ, handler)
    watchdog = threading.Timer(5, reactor.stop)
    watchdog.start()
    b.sendall(b"You've got message")
    reactor.run()
    watchdog.cancel()
    assert handler.received == [b"You've got message"]


def test_stop_from_another_thread(pair):
    a, _ = pair
    reactor = Reactor(SelectListener(timeout=0.05))
    reactor.register(a.fileno(), FdMode.READ, lambda fd, mode: None)
    thread = threading.Thread(target=reactor.run, daemon=True)
    thread.start()
    threading.Event().wait(0.1)
    reactor.stop()
    thread.join(2)
    assert not thread.is_alive()


def test_select_listener_reports_readiness(pair):
    a, b = pair
    listener = SelectListener(timeout=0)
    assert listener.listen([(a.fileno(), FdMode.READ)]) == []
    b.sendall(b"x")
    ready = SelectListener(timeout=1).listen(
        [(a.fileno(), FdMode.READ), (b.fileno(), FdMode.WRITE)]
    )
    assert ready == [(a.fileno(), FdMode.READ), (b.fileno(), FdMode.WRITE)]


def test_handler_error_propagates_out_of_run():
    listener = ScriptedListener([[(1, FdMode.READ)]])
    reactor = Reactor(listener)
    listener.reactor = reactor

    def fail(fd, mode):
        raise ValueError("handler failed")

    reactor.register(1, FdMode.READ, fail)
    with pytest.raises(ValueError):
        reactor.run()