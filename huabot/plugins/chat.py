"""Replies to the bot's name, pokes, and a per-group air conditioner."""

from __future__ import annotations

import random
import time
from typing import Callable

from huabot.core import Bot, Context, only_to_me, text

DEFAULT_TEMPERATURE = 26


class TokenBucket:
    """Holds up to `burst` tokens, refilled evenly over `interval` seconds."""

    def __init__(self, interval: float, burst: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.interval = interval
        self.burst = burst
        self.clock = clock
        self.tokens = float(burst)
        self.last = clock()

    def acquire(self, n: int = 1) -> bool:
        now = self.clock()
        self.tokens = min(self.burst, self.tokens + (now - self.last) * self.burst / self.interval)
        self.last = now
        if self.tokens >= n:
            self.tokens -= n
            return True
        return False


class AirConditioner:
    """Per-group on/off switch and temperature."""

    def __init__(self) -> None:
        self.temps: dict[int, int] = {}
        self.switch: dict[int, bool] = {}

    def turn_on(self, gid: int) -> str:
        self.switch[gid] = True
        return "❄️哔~"

    def turn_off(self, gid: int) -> str:
        self.switch[gid] = False
        self.temps.pop(gid, None)
        return "💤哔~"

    def set_temperature(self, gid: int, value: int) -> str:
        self.temps.setdefault(gid, DEFAULT_TEMPERATURE)
        if self.switch.get(gid, False):
            self.temps[gid] = int(value)
        return self.report(gid)

    def report(self, gid: int) -> str:
        temp = self.temps.setdefault(gid, DEFAULT_TEMPERATURE)
        head = "❄️风速中" if self.switch.get(gid, False) else "💤"
        return f"{head}\n群温度 {temp}℃"


def name_replies(nickname: str) -> list[str]:
    return [
        nickname + "在此，有何贵干~",
        "(っ●ω●)っ在~",
        "这里是" + nickname + "(っ●ω●)っ",
        nickname + "不在呢~",
    ]


def register(bot: Bot) -> None:
    engine = bot.register("chat", "chat\n- [BOT名字]\n- [戳一戳BOT]\n- 空调开\n- 空调关\n- 群温度\n- 设置温度[正整数]")
    pokes: dict[int, TokenBucket] = {}
    air = AirConditioner()

    @engine.on_full_match("", only_to_me).handle
    def _name(ctx: Context) -> None:
        bot.sleep(1)
        ctx.send(text(random.choice(name_replies(bot.nickname[0]))))

    poke = engine.on("notice/notify/poke", only_to_me).set_block(False)

    @poke.handle
    def _poke(ctx: Context) -> None:
        bucket = pokes.setdefault(ctx.event.group_id, TokenBucket(300, 8))
        nickname = bot.nickname[0]
        if bucket.acquire(3):
            bot.sleep(1)
            ctx.send(text("请不要戳", nickname, " >_<"))
        elif bucket.acquire(1):
            bot.sleep(1)
            ctx.send(text("喂(#`O′) 戳", nickname, "干嘛！"))

    engine.on_full_match("空调开").handle(lambda ctx: ctx.send(text(air.turn_on(ctx.event.group_id))))
    engine.on_full_match("空调关").handle(lambda ctx: ctx.send(text(air.turn_off(ctx.event.group_id))))
    engine.on_regex(r"设置温度(\d+)").handle(
        lambda ctx: ctx.send(
            text(air.set_temperature(ctx.event.group_id, int(ctx.state["regex_matched"][1])))
        )
    )
    engine.on_full_match("群温度").handle(lambda ctx: ctx.send(text(air.report(ctx.event.group_id))))