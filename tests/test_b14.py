import pytest

from huabot.core import Bot, Event, text
from huabot.plugins import b14


@pytest.mark.parametrize("size", range(0, 22))
def test_round_trip_bytes(size):
    data = bytes((i * 37 + 11) % 256 for i in range(size))
    assert b14.decode(b14.encode(data)) == data


@pytest.mark.parametrize("message", ["hello", "你好，世界", "a", "1234567", "🙂 mixed ✓"])
def test_round_trip_string(message):
    assert b14.decode_string(b14.encode_string(message)) == message


def test_empty():
    assert b14.encode(b"") == b""
    assert b14.decode(b"") == b""


def test_full_block_has_no_marker():
    encoded = b14.encode_string("1234567")
    assert len(encoded) == 4
    assert all(0x4E00 <= ord(c) <= 0x8DFF for c in encoded)


@pytest.mark.parametrize("size", range(1, 7))
def test_partial_block_marker(size):
    encoded = b14.encode(b"x" * size).decode("utf-16-be")
    assert ord(encoded[-1]) == 0x3D00 + size
    assert all(0x4E00 <= ord(c) <= 0x8DFF for c in encoded[:-1])


def test_encode_is_utf16be():
    assert b14.encode(b"abc").decode("utf-16-be") == b14.encode_string("abc")


def test_invalid_character():
    with pytest.raises(ValueError):
        b14.decode_string("abc")


def test_odd_length_bytes():
    with pytest.raises(ValueError):
        b14.decode(b"\x4e")


def test_bot_encrypt_decrypt():
    bot = Bot()
    b14.register(bot)
    ctx = bot.handle(Event([text("加密 hello")], group_id=1))
    encoded = ctx.sent[0][0].data["text"]
    assert encoded == b14.encode_string("hello")
    ctx = bot.handle(Event([text("解密" + encoded)], group_id=1))
    assert ctx.sent[0][0].data["text"] == "hello"