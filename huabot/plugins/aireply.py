"""Chat replies from a selectable backend, optionally spoken aloud."""

from __future__ import annotations

import logging
import re
import threading
from decimal import Decimal
from typing import Callable, Iterable

from huabot.core import Bot, Context, Control, only_to_me, record, reply, text

log = logging.getLogger(__name__)

Talker = Callable[[str, str], str]
Speaker = Callable[[int, str], str]

REPLY_MODES = ("青云客", "小爱")
SOUND_MODES = ("拟声鸟阿梓", "拟声鸟文静", "拟声鸟药水哥", "百度女声", "百度男声", "百度度逍遥", "百度度丫丫")

# Backends are provided by the deployment: mode name -> talker / speaker factory.
REPLY_BACKENDS: dict[str, Talker] = {}
TTS_FACTORIES: dict[str, Callable[[], Speaker]] = {}

_NUMBER = re.compile(r"[-+]?[0-9]+(\.[0-9]+)?")
_DIGITS = "零一二三四五六七八九"
_UNITS = ("", "十", "百", "千")


class TTSInstances:
    """The ordered list of voices and how to create each one."""

    def __init__(
        self,
        factories: dict[str, Callable[[], Speaker]] | None = None,
        order: Iterable[str] = SOUND_MODES,
    ) -> None:
        self._lock = threading.RLock()
        self._factories = factories if factories is not None else {}
        self._order = list(order)

    def list(self) -> list[str]:
        with self._lock:
            return list(self._order)

    def speaker_for(self, name: str) -> Speaker | None:
        """A new speaker for the voice, or None when it has no backend."""
        with self._lock:
            factory = self._factories.get(name)
        return factory() if factory is not None else None

    def get_sound_mode(self, control: Control | None, gid: int) -> str:
        if control is not None:
            with self._lock:
                index = control.get_data(gid)
                if 0 <= index < len(self._order):
                    return self._order[index]
        return "拟声鸟阿梓"

    def set_sound_mode(self, control: Control, gid: int, name: str) -> None:
        with self._lock:
            if name not in self._order:
                raise ValueError("no such mode")
            index = self._order.index(name)
        control.set_data(gid, index)

    def set_default_sound_mode(self, name: str) -> None:
        with self._lock:
            if name not in self._order:
                raise ValueError("no such mode")
            index = self._order.index(name)
            self._order[0], self._order[index] = self._order[index], self._order[0]


def set_reply_mode(control: Control | None, gid: int, name: str) -> None:
    if name not in REPLY_MODES:
        raise ValueError("no such mode")
    if control is None:
        raise LookupError("no such plugin")
    control.set_data(gid, REPLY_MODES.index(name))


def get_reply_mode(control: Control | None, gid: int) -> str:
    if control is not None:
        index = control.get_data(gid)
        if 0 <= index < len(REPLY_MODES):
            return REPLY_MODES[index]
    return "青云客"


def _section(n: int) -> str:
    parts: list[str] = []
    gap = False
    for unit, digit in zip((3, 2, 1, 0), f"{n:04d}"):
        d = int(digit)
        if d == 0:
            gap = bool(parts)
            continue
        if gap:
            parts.append("零")
            gap = False
        parts.append(_DIGITS[d] + _UNITS[unit])
    return "".join(parts)


def _integer(n: int) -> str:
    if n == 0:
        return "零"
    if n >= 10**8:
        high, low = divmod(n, 10**8)
        unit, width = "亿", 10**7
    elif n >= 10**4:
        high, low = divmod(n, 10**4)
        unit, width = "万", 1000
    else:
        return _section(n)
    out = _integer(high) + unit
    if low:
        out += ("零" if low < width else "") + _integer(low)
    return out


def encode_number(value: float) -> str:
    """Chinese numerals for a number, e.g. 12.5 -> 十二点五."""
    number = Decimal(repr(float(value))) if isinstance(value, float) else Decimal(value)
    if not number.is_finite():
        raise ValueError("number is not finite")
    digits = format(abs(number), "f")
    whole, _, frac = digits.partition(".")
    frac = frac.rstrip("0")
    out = _integer(int(whole))
    if out.startswith("一十"):
        out = out[1:]
    if frac:
        out += "点" + "".join(_DIGITS[int(d)] for d in frac)
    if number < 0 and (int(whole) or frac):
        out = "负" + out
    return out


def numbers_to_chinese(text: str) -> str:
    """Spell every decimal number in the text with Chinese numerals."""
    return _NUMBER.sub(lambda m: encode_number(float(m.group())), text)


def register(bot: Bot) -> None:
    voices = TTSInstances(TTS_FACTORIES)
    modes = "拟声鸟阿梓 | 拟声鸟文静 | 拟声鸟药水哥 | 百度女声 | 百度男声| 百度度逍遥 | 百度度丫丫"
    tts = bot.register(
        "tts",
        "语音回复(包括拟声鸟和百度)\n- @Bot 任意文本(任意一句话回复)\n"
        f"- 设置语音模式[{modes}]\n- 设置默认语音模式[{modes}]\n",
        disable_on_default=True,
    )

    @tts.on_message(only_to_me).handle
    def _speak(ctx: Context) -> None:
        gid = ctx.group_key()
        control = ctx.state["manager"]
        talker = REPLY_BACKENDS.get(get_reply_mode(control, gid))
        try:
            speaker = voices.speaker_for(voices.get_sound_mode(control, gid))
        except Exception as err:  # backend failures are reported to the chat
            ctx.send(text("ERROR:", err))
            return
        if speaker is None or talker is None:
            return
        answer = numbers_to_chinese(talker(ctx.extract_plain_text(), bot.nickname[0]))
        log.debug("[tts]: %s", answer)
        try:
            ctx.send(record(speaker(ctx.event.user_id, answer)))
        except Exception:  # fall back to text when speech fails
            ctx.send(reply(ctx.event.message_id), text(answer))

    def _in_list(ctx: Context) -> bool:
        return ctx.state["regex_matched"][1] in voices.list()

    @tts.on_regex(r"^设置语音模式(.*)$", _in_list).handle
    def _set_voice(ctx: Context) -> None:
        name = ctx.state["regex_matched"][1]
        try:
            voices.set_sound_mode(ctx.state["manager"], ctx.group_key(), name)
        except ValueError as err:
            ctx.send(reply(ctx.event.message_id), text(err))
            return
        ctx.send(reply(ctx.event.message_id), text("设置成功，当前模式为", name))

    @tts.on_regex(r"^设置默认语音模式(.*)$", _in_list).handle
    def _set_default_voice(ctx: Context) -> None:
        name = ctx.state["regex_matched"][1]
        voices.set_default_sound_mode(name)
        ctx.send(reply(ctx.event.message_id), text("设置成功，默认模式为", name))

    engine = bot.register("aireply", "人工智能回复\n- @Bot 任意文本(任意一句话回复)\n- 设置回复模式[青云客  |  小爱]\n- ")

    @engine.on_message(only_to_me).handle
    def _reply(ctx: Context) -> None:
        talker = REPLY_BACKENDS.get(get_reply_mode(ctx.state["manager"], ctx.group_key()))
        if talker is None:
            return
        chain = [text(talker(ctx.extract_plain_text(), bot.nickname[0]))]
        bot.sleep(1)
        if ctx.event.group_id != 0:
            chain.append(reply(ctx.event.message_id))
        ctx.send(*chain)

    @engine.on_prefix("设置回复模式").handle
    def _set_mode(ctx: Context) -> None:
        try:
            set_reply_mode(ctx.state["manager"], ctx.group_key(), ctx.state["args"])
        except (ValueError, LookupError) as err:
            ctx.send(reply(ctx.event.message_id), text(err))
            return
        ctx.send(reply(ctx.event.message_id), text("成功"))