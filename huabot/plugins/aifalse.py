"""Server status report and the default rate limit setting."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

import psutil

from huabot.core import Bot, Context, admin_permission, super_user_permission, text

log = logging.getLogger(__name__)

HELP = (
    "AIfalse\n"
    "- 查询计算机当前活跃度: [检查身体 | 自检 | 启动自检 | 系统状态]\n"
    "- 设置默认限速为每 m [分钟 | 秒] n 次触发"
)
LIMIT_COMMAND = re.compile(r"^设置默认限速为每\s*([0-9]+)\s*(分钟|秒)\s*([0-9]+)\s*次触发$")
_PSUTIL_ERRORS = (OSError, RuntimeError, psutil.Error)


@dataclass
class LimitSetting:
    """The default limiter: `burst` triggers every `interval` seconds."""

    interval: int = 0
    burst: int = 0


default_limit = LimitSetting()


def _round(value: float) -> float:
    """Round half away from zero."""
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _fmt(value: float) -> str:
    return f"{value:g}"


def cpu_percent() -> float:
    """CPU usage over one second, rounded; -1 when unavailable."""
    try:
        return _round(psutil.cpu_percent(interval=1, percpu=False))
    except _PSUTIL_ERRORS:
        return -1


def mem_percent() -> float:
    """Used memory in percent, rounded; -1 when unavailable."""
    try:
        return _round(psutil.virtual_memory().percent)
    except _PSUTIL_ERRORS:
        return -1


def disk_percent() -> str:
    """One line per mounted partition that is in use."""
    try:
        parts = psutil.disk_partitions(all=True)
    except _PSUTIL_ERRORS as err:
        return str(err)
    lines = []
    for part in parts:
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except _PSUTIL_ERRORS as err:
            lines.append(f"\n  - {err}")
            continue
        used = int(_round(usage.percent))
        if used > 0:
            lines.append(f"\n  - {part.mountpoint}({usage.total // 1024 // 1024}M) {used}%")
    return "".join(lines)


def encode_limit(interval: int, burst: int) -> int:
    """Pack an interval in seconds and a burst into one stored integer."""
    return (interval & 0xFFFF) | ((burst << 16) & 0xFFFF0000)


def decode_limit(value: int) -> tuple[int, int]:
    """Unpack (interval, burst) from a stored integer."""
    return value & 0xFFFF, (value >> 16) & 0xFFFF


def parse_limit_command(text: str) -> tuple[int, int]:
    """Read (interval in seconds, burst) from a limit command."""
    found = LIMIT_COMMAND.match(text)
    if found is None:
        raise ValueError("not a limit command")
    interval = int(found[1])
    if found[2] == "分钟":
        interval *= 60
    if not 0 < interval < 65536:
        raise ValueError("interval too big")
    burst = int(found[3])
    if not 0 < burst < 65536:
        raise ValueError("burst too big")
    return interval, burst


def _apply(interval: int, burst: int) -> None:
    default_limit.interval = interval
    default_limit.burst = burst


def register(bot: Bot) -> None:
    engine = bot.register("aifalse", HELP)
    interval, burst = decode_limit(engine.control.get_data(0))
    if interval or burst:
        _apply(interval, burst)
        log.info("设置默认限速为每 %d 秒触发 %d 次", interval, burst)

    @engine.on_full_match(["检查身体", "自检", "启动自检", "系统状态"], admin_permission).handle
    def _status(ctx: Context) -> None:
        ctx.send(
            text(
                "* CPU占用: ", _fmt(cpu_percent()), "%\n",
                "* RAM占用: ", _fmt(mem_percent()), "%\n",
                "* 硬盘使用: ", disk_percent(),
            )
        )

    @engine.on_regex(LIMIT_COMMAND.pattern, super_user_permission).handle
    def _set_limit(ctx: Context) -> None:
        try:
            seconds, count = parse_limit_command(ctx.state["regex_matched"][0])
        except ValueError as err:
            ctx.send(text("ERROR:", err))
            return
        _apply(seconds, count)
        ctx.state["manager"].set_data(0, encode_limit(seconds, count))
        ctx.send(text("设置默认限速为每", seconds, "秒触发", count, "次"))