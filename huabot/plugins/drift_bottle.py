"""Drift bottles: throw a message into a channel, let someone else pick it up."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path

from huabot.core import Bot, Context, only_to_me, reply, super_user_permission, text

log = logging.getLogger(__name__)

DEFAULT_CHANNEL = "global"
DATA_ENV = "HUABOT_DRIFTBOTTLE_DATA"
HELP = (
    "漂流瓶\n- (在群xxx)丢漂流瓶(到频道xxx) [消息]\n- (从频道xxx)捡漂流瓶\n- @BOT 创建频道 xxx\n"
    "- 跳入(频道)海中\n- 注：不显式限制时，私聊发送可在所有群抽到，群聊发送仅可在本群抽到，默认频道为 global"
)

_POLY = 0xD800000000000000
_MASK = 0xFFFFFFFFFFFFFFFF


def _make_table() -> list[int]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            crc = (crc >> 1) ^ _POLY if crc & 1 else crc >> 1
        table.append(crc)
    return table


_TABLE = _make_table()


def crc64_iso(data: bytes) -> int:
    """CRC-64 with the ISO polynomial, reflected, as an unsigned integer."""
    crc = _MASK
    for byte in data:
        crc = _TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ _MASK


@dataclass
class Bottle:
    id: int
    qq: int
    grp: int
    name: str
    msg: str


def new_bottle(qq: int, grp: int, name: str, msg: str) -> Bottle:
    """A bottle whose id is the checksum of its contents."""
    checksum = crc64_iso(f"{qq}_{grp}_{name}_{msg}".encode("utf-8"))
    signed = checksum - (1 << 64) if checksum >= 1 << 63 else checksum
    return Bottle(signed, qq, grp, name, msg)


def _table(channel: str) -> str:
    return '"' + channel.replace('"', '""') + '"'


class Sea:
    """Channels of bottles in a sqlite file, one table per channel."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(str(self.path), check_same_thread=False)

    def create_channel(self, channel: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                f"CREATE TABLE IF NOT EXISTS {_table(channel)} "
                "(id INTEGER PRIMARY KEY, qq INTEGER, grp INTEGER, name TEXT, msg TEXT)"
            )

    def throw(self, bottle: Bottle, channel: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                f"INSERT OR REPLACE INTO {_table(channel)} (id, qq, grp, name, msg) VALUES (?, ?, ?, ?, ?)",
                (bottle.id, bottle.qq, bottle.grp, bottle.name, bottle.msg),
            )

    def fetch(self, channel: str, grp: int) -> Bottle:
        """A random bottle open to everyone or to `grp`; LookupError when none."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT id, qq, grp, name, msg FROM {_table(channel)} "
                "WHERE grp = 0 OR grp = ? ORDER BY RANDOM() LIMIT 1",
                (grp,),
            ).fetchone()
        if row is None:
            raise LookupError("sql: no rows in result set")
        return Bottle(*row)

    def destroy(self, bottle: Bottle, channel: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(f"DELETE FROM {_table(channel)} WHERE id = ?", (bottle.id,))

    def count(self, channel: str) -> int:
        with self._lock:
            return self._conn.execute(f"SELECT COUNT(*) FROM {_table(channel)}").fetchone()[0]

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "Sea":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def register(bot: Bot) -> None:
    engine = bot.register("driftbottle", HELP)
    folder = Path(os.environ.get(DATA_ENV, "data/driftbottle"))
    folder.mkdir(parents=True, exist_ok=True)
    sea = Sea(folder / "sea.db")
    sea.create_channel(DEFAULT_CHANNEL)

    @engine.on_regex(r"^(在群[0-9]+)?丢漂流瓶(到频道[0-9A-Za-z_]+)?\s+(.*)$").handle
    def _throw(ctx: Context) -> None:
        groups = ctx.state["regex_matched"]
        target, named, msg = groups[1] or "", groups[2] or "", groups[3] or ""
        grp = ctx.event.group_id
        channel = DEFAULT_CHANNEL
        if target:
            try:
                grp = int(target[2:])
            except ValueError:
                ctx.send(text("群号非法!"))
                return
        if named:
            channel = named[3:]
        if not msg:
            ctx.send(text("消息为空!"))
            return
        log.debug("[driftbottle] %s %s %s", grp, channel, msg)
        name = ctx.event.nickname or str(ctx.event.user_id)
        try:
            sea.throw(new_bottle(ctx.event.user_id, grp, name, msg), channel)
        except sqlite3.Error as err:
            ctx.send(text("ERROR:", err))
            return
        ctx.send(reply(ctx.event.message_id), text("你将它扔进大海，希望有人捞到吧~"))

    @engine.on_regex(r"^(从频道[0-9A-Za-z_]+)?捡漂流瓶$").handle
    def _pick(ctx: Context) -> None:
        named = ctx.state["regex_matched"][1] or ""
        grp = ctx.group_key()
        if grp == 0:
            ctx.send(text("找不到对象!"))
            return
        channel = named[3:] if named else DEFAULT_CHANNEL
        log.debug("[driftbottle] %s %s", grp, channel)
        try:
            bottle = sea.fetch(channel, grp)
        except (LookupError, sqlite3.Error) as err:
            ctx.send(text("ERROR:", err))
            return
        ctx.send(
            reply(ctx.event.message_id),
            text("你在海边捡到了一个来自 ", bottle.name, " 的漂流瓶，打开瓶子，里面有一张纸条，写着："),
            text(bottle.msg),
        )
        try:
            sea.destroy(bottle, channel)
        except sqlite3.Error as err:
            ctx.send(text("ERROR:", err))

    @engine.on_prefix("创建频道", super_user_permission, only_to_me).handle
    def _create(ctx: Context) -> None:
        channel = ctx.state["args"].rstrip(" ")
        if not channel:
            ctx.send(text("频道名为空!"))
            return
        try:
            sea.create_channel(channel)
        except sqlite3.Error as err:
            ctx.send(text("ERROR:", err))
            return
        ctx.send(reply(ctx.event.message_id), text("成功~"))

    @engine.on_regex(r"^跳入([0-9A-Za-z_]+)?海中$").handle
    def _dive(ctx: Context) -> None:
        channel = ctx.state["regex_matched"][1] or DEFAULT_CHANNEL
        try:
            count = sea.count(channel)
        except sqlite3.Error as err:
            ctx.send(text("ERROR:", err))
            return
        ctx.send(
            reply(ctx.event.message_id),
            text(
                "你缓缓走入大海，感受着海浪轻柔地拍打着你的小腿，膝盖……\n波浪卷着你的腰腹，你感觉有些把握不住平衡了……\n……\n你沉入海中，",
                count,
                " 个物体与你一同沉浮。\n不知何处涌来一股暗流，你失去了意识。",
            ),
        )