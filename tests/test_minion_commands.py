import pytest

from iotdrive.file_manager import FileManager
from iotdrive.minion_commands import MinionReadCommand, MinionWriteCommand
from iotdrive.task_args import MinionReadArgs, MinionWriteArgs
from iotdrive.uid import next_uid


class FakeMasterProxy:
    def __init__(self):
        self.read_responses = []
        self.write_responses = []

    def send_read_response(self, status, data, uid):
        self.read_responses.append((status, data, uid))

    def send_write_response(self, status, uid):
        self.write_responses.append((status, uid))


class BrokenFileManager:
    def read(self, offset, length):
        raise OSError("disk gone")

    def write(self, offset, data):
        raise OSError("disk gone")


@pytest.fixture
def storage(tmp_path):
    path = tmp_path / "a.dat"
    path.write_bytes(b"\0" * 64)
    with FileManager(path) as files:
        yield files, path


def test_read_sends_file_contents(storage):
    files, _ = storage
    files.write(4, b"bla bla")
    master = FakeMasterProxy()
    uid = next_uid()
    args = MinionReadArgs(4, 7, uid=uid)
    assert MinionReadCommand(files, master).run(args) is None
    assert master.read_responses == [(True, b"bla bla", uid)]
    assert bytes(args.data) == b"bla bla"


def test_read_past_end_reports_failure(storage):
    files, _ = storage
    master = FakeMasterProxy()
    uid = next_uid()
    MinionReadCommand(files, master).run(MinionReadArgs(60, 8, uid=uid))
    assert master.read_responses == [(False, b"\0" * 8, uid)]


def test_write_stores_and_reports_success(storage):
    files, path = storage
    master = FakeMasterProxy()
    uid = next_uid()
    args = MinionWriteArgs(4, 7, b"bla bla", uid)
    assert MinionWriteCommand(files, master).run(args) is None
    assert master.write_responses == [(True, uid)]
    assert files.read(4, 7) == b"bla bla"


def test_write_only_uses_length_bytes(storage):
    files, _ = storage
    master = FakeMasterProxy()
    MinionWriteCommand(files, master).run(MinionWriteArgs(0, 3, b"abcdef", next_uid()))
    assert files.read(0, 6) == b"abc\0\0\0"


def test_failed_write_reports_failure_once():
    master = FakeMasterProxy()
    uid = next_uid()
    MinionWriteCommand(BrokenFileManager(), master).run(MinionWriteArgs(0, 1, b"x", uid))
    assert master.write_responses == [(False, uid)]


def test_failed_read_reports_failure_once():
    master = FakeMasterProxy()
    uid = next_uid()
    MinionReadCommand(BrokenFileManager(), master).run(MinionReadArgs(0, 2, uid=uid))
    assert master.read_responses == [(False, b"\0\0", uid)]