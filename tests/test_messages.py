import pytest

from iotdrive.messages import (
    ClassType,
    ReadMessageResponse,
    ReadMessageSend,
    Result,
    WriteMessageResponse,
    WriteMessageSend,
    decode_message,
)
from iotdrive.uid import UID, next_uid


def test_read_message_send_round_trip():
    uid = next_uid()
    received = decode_message(ReadMessageSend(uid, 4, 6).to_bytes())
    assert isinstance(received, ReadMessageSend)
    assert received.offset == 4
    assert received.length == 6
    assert received.uid == uid


def test_write_message_send_round_trip():
    uid = next_uid()
    received = decode_message(WriteMessageSend(uid, 4, b"bla bla").to_bytes())
    assert isinstance(received, WriteMessageSend)
    assert received.offset == 4
    assert received.length == 7
    assert received.data == b"bla bla"
    assert received.uid == uid


def test_read_message_response_round_trip():
    uid = next_uid()
    received = decode_message(ReadMessageResponse(uid, b"bla bla", Result.SUCCESS).to_bytes())
    assert isinstance(received, ReadMessageResponse)
    assert received.length == 7
    assert received.data == b"bla bla"
    assert received.result is Result.SUCCESS
    assert received.uid == uid


def test_write_message_response_round_trip():
    uid = next_uid()
    received = decode_message(WriteMessageResponse(uid, Result.SUCCESS).to_bytes())
    assert isinstance(received, WriteMessageResponse)
    assert received.result is Result.SUCCESS
    assert received.uid == uid


def test_failure_result_survives_round_trip():
    received = decode_message(WriteMessageResponse(next_uid(), Result.FAILURE).to_bytes())
    assert received.result is Result.FAILURE


def test_read_message_send_wire_bytes():
    encoded = ReadMessageSend(UID(5), 4, 6).to_bytes()
    assert encoded == (
        b"\x18\x00\x00\x00"
        b"\x01\x00\x00\x00"
        b"\x05\x00\x00\x00\x00\x00\x00\x00"
        b"\x04\x00\x00\x00"
        b"\x06\x00\x00\x00"
    )


def test_write_message_response_wire_bytes():
    encoded = WriteMessageResponse(UID(2), Result.FAILURE).to_bytes()
    assert encoded == (
        b"\x14\x00\x00\x00"
        b"\x02\x00\x00\x00"
        b"\x02\x00\x00\x00\x00\x00\x00\x00"
        b"\x01\x00\x00\x00"
    )


def test_sizes_grow_with_data():
    assert len(WriteMessageSend(UID(1), 0, b"bla bla").to_bytes()) == 24 + 7
    assert len(ReadMessageResponse(UID(1), b"bla bla").to_bytes()) == 24 + 7


def test_header_size_field_matches_length():
    for message in (
        ReadMessageSend(UID(1), 1, 2),
        WriteMessageSend(UID(1), 1, b"xyz"),
        ReadMessageResponse(UID(1), b"abcd"),
        WriteMessageResponse(UID(1)),
    ):
        encoded = message.to_bytes()
        assert int.from_bytes(encoded[:4], "little") == len(encoded)
        assert int.from_bytes(encoded[4:8], "little") == message.class_type


def test_payload_is_tail_of_encoding():
    message = WriteMessageSend(UID(3), 9, b"data")
    assert message.to_bytes()[16:] == message.payload()


def test_class_types():
    assert ReadMessageSend(UID(1), 0, 0).class_type is ClassType.READ_SEND
    assert WriteMessageSend(UID(1), 0, b"").class_type is ClassType.WRITE_SEND
    assert ReadMessageResponse(UID(1), b"").class_type is ClassType.READ_RESPONSE
    assert WriteMessageResponse(UID(1)).class_type is ClassType.WRITE_RESPONSE


def test_default_messages_have_null_uid():
    assert ReadMessageSend().uid == UID()
    assert WriteMessageSend().length == 0
    assert ReadMessageResponse().data == b""


def test_trailing_bytes_are_ignored():
    original = WriteMessageSend(UID(7), 2, b"hello")
    received = decode_message(original.to_bytes() + b"\x00garbage")
    assert received == original


def test_truncated_header_rejected():
    with pytest.raises(ValueError):
        decode_message(b"\x18\x00\x00")


def test_truncated_body_rejected():
    encoded = ReadMessageSend(UID(1), 4, 6).to_bytes()
    with pytest.raises(ValueError):
        decode_message(encoded[:-2])


def test_unknown_type_rejected():
    encoded = bytearray(WriteMessageResponse(UID(1)).to_bytes())
    encoded[4] = 9
    with pytest.raises(ValueError):
        decode_message(bytes(encoded))


def test_invalid_result_rejected():
    encoded = bytearray(WriteMessageResponse(UID(1)).to_bytes())
    encoded[16] = 7
    with pytest.raises(ValueError):
        decode_message(bytes(encoded))


def test_inconsistent_write_length_rejected():
    encoded = bytearray(WriteMessageSend(UID(1), 0, b"abc").to_bytes())
    encoded[20] = 5
    with pytest.raises(ValueError):
        decode_message(bytes(encoded))


@pytest.mark.parametrize("offset", [-1, 2**32])
def test_offset_out_of_range_rejected(offset):
    with pytest.raises(ValueError):
        ReadMessageSend(UID(1), offset, 0)


def test_result_coerced_from_int():
    assert ReadMessageResponse(UID(1), b"", 1).result is Result.FAILURE