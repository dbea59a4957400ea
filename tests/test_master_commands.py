import pytest

from iotdrive.master_commands import MasterReadCommand, MasterWriteCommand
from iotdrive.task_args import NBDArgs, NBDReadArgs, NBDWriteArgs


class FakeMinionManager:
    def __init__(self):
        self.reads = []
        self.writes = []

    def add_read_task(self, offset, length, uid):
        self.reads.append((offset, length, uid))

    def add_write_task(self, offset, length, uid, data=None):
        self.writes.append((offset, length, uid, data))


class FakeResponseManager:
    def __init__(self):
        self.open = set()
        self.removed = []

    def contains(self, uid):
        return uid in self.open

    def remove(self, uid):
        self.removed.append(uid)
        self.open.discard(uid)


@pytest.fixture
def managers():
    return FakeMinionManager(), FakeResponseManager()


def test_read_command_sends_read(managers):
    minions, responses = managers
    args = NBDReadArgs(NBDArgs(4, 6))
    check, interval = MasterReadCommand(minions, responses).run(args)
    assert minions.reads == [(4, 6, args.uid)]
    assert interval == 0.1


def test_write_command_sends_write(managers):
    minions, responses = managers
    args = NBDWriteArgs(NBDArgs(4, 7, b"bla bla"))
    check, interval = MasterWriteCommand(minions, responses).run(args)
    assert minions.writes == [(4, 7, args.uid, b"bla bla")]
    assert interval == 0.1


def test_check_done_when_ticket_closed(managers):
    minions, responses = managers
    args = NBDReadArgs(NBDArgs(0, 1))
    check, _ = MasterReadCommand(minions, responses).run(args)
    assert check() is True
    assert responses.removed == []


def test_check_waits_while_ticket_open(managers):
    minions, responses = managers
    args = NBDReadArgs(NBDArgs(0, 1))
    check, _ = MasterReadCommand(minions, responses).run(args)
    responses.open.add(args.uid)
    assert check() is False
    assert responses.contains(args.uid)
    responses.open.discard(args.uid)
    assert check() is True


def test_check_gives_up_after_ten_polls(managers):
    minions, responses = managers
    args = NBDWriteArgs(NBDArgs(0, 2, b"ab"))
    check, _ = MasterWriteCommand(minions, responses).run(args)
    responses.open.add(args.uid)
    results = [check() for _ in range(10)]
    assert results == [False] * 10
    assert responses.removed == [args.uid]
    assert check() is True


def test_each_run_has_its_own_counter(managers):
    minions, responses = managers
    command = MasterReadCommand(minions, responses)
    first = NBDReadArgs(NBDArgs(0, 1))
    second = NBDReadArgs(NBDArgs(0, 1))
    check_first, _ = command.run(first)
    check_second, _ = command.run(second)
    responses.open.update({first.uid, second.uid})
    for _ in range(9):
        check_first()
    check_second()
    assert responses.removed == []
    check_first()
    assert responses.removed == [first.uid]