"""Base16384 encoding: seven bytes in four CJK characters."""

from __future__ import annotations

from huabot.core import Bot, Context, text

_BASE = 0x4E00
_MARK = 0x3D00


def encode(data: bytes) -> bytes:
    """Encode bytes into base16384, returned as UTF-16BE."""
    chars: list[int] = []
    for start in range(0, len(data), 7):
        block = data[start:start + 7]
        value = int.from_bytes(block.ljust(7, b"\0"), "big")
        count = 4 if len(block) == 7 else -(-len(block) * 8 // 14)
        chars.extend(_BASE + ((value >> (42 - 14 * k)) & 0x3FFF) for k in range(count))
    remainder = len(data) % 7
    if remainder:
        chars.append(_MARK + remainder)
    return "".join(map(chr, chars)).encode("utf-16-be")


def _decode_text(encoded: str) -> bytes:
    remainder = 0
    if encoded and _MARK < ord(encoded[-1]) <= _MARK + 6:
        remainder = ord(encoded[-1]) - _MARK
        encoded = encoded[:-1]
    values = []
    for ch in encoded:
        value = ord(ch) - _BASE
        if not 0 <= value <= 0x3FFF:
            raise ValueError(f"invalid base16384 character {ch!r}")
        values.append(value)
    if remainder and not values:
        raise ValueError("length marker without data")
    out = bytearray()
    for start in range(0, len(values), 4):
        group = values[start:start + 4]
        block = 0
        for value in group:
            block = block << 14 | value
        block <<= 14 * (4 - len(group))
        out += block.to_bytes(7, "big")
    if remainder:
        total = (len(values) - 1) // 4 * 7 + remainder
        if total > len(out):
            raise ValueError("truncated base16384 data")
    else:
        total = len(values) * 14 // 8
    return bytes(out[:total])


def decode(data: bytes) -> bytes:
    """Decode UTF-16BE base16384 back into bytes."""
    if len(data) % 2:
        raise ValueError("UTF-16BE data has an odd length")
    return _decode_text(data.decode("utf-16-be"))


def encode_string(text: str) -> str:
    return encode(text.encode("utf-8")).decode("utf-16-be")


def decode_string(text: str) -> str:
    return _decode_text(text).decode("utf-8")


def register(bot: Bot) -> None:
    engine = bot.register("base16384", "base16384加解密\n- 加密xxx\n- 解密xxx")

    @engine.on_regex(r"^加密\s*(.*)").handle
    def _encode(ctx: Context) -> None:
        encoded = encode_string(ctx.state["regex_matched"][1])
        ctx.send(text(encoded or "加密失败!"))

    @engine.on_regex(r"^解密\s*([一-踀]*[㴁-㴆]?)$").handle
    def _decode(ctx: Context) -> None:
        try:
            decoded = decode_string(ctx.state["regex_matched"][1])
        except ValueError:
            decoded = ""
        ctx.send(text(decoded or "解密失败!"))