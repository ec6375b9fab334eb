"""Insults on request, and back at those who insult the bot."""

from __future__ import annotations

import logging
import os
import random
import sqlite3
from pathlib import Path

from huabot.core import Bot, Context, Database, only_to_me, reply, text
from huabot.plugins.chat import TokenBucket

log = logging.getLogger(__name__)

TABLE = "curse"
MIN_LEVEL = "min"
MAX_LEVEL = "max"
DATA_ENV = "HUABOT_CURSE_DATA"
HELP = "骂人(求骂,自卫)\n- 骂我\n- 大力骂我"
TRIGGERS = (
    "他妈", "公交车", "你妈", "操", "屎", "去死", "快死", "我日", "逼",
    "尼玛", "艾滋", "癌症", "有病", "烦你", "你爹", "屮", "cnm",
)
USER_LIMIT = (5, 1)


class Curses:
    """The curse table of a sqlite file."""

    def __init__(self, path: str | Path) -> None:
        self.db = Database(path)
        self.db.create(TABLE, ("id", "text", "level"))

    def random_by_level(self, level: str) -> str:
        """A random curse of the level; LookupError when there is none."""
        return self.db.find(TABLE, "level = ? ORDER BY RANDOM()", (level,))["text"]

    def count(self) -> int:
        return self.db.count(TABLE)

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "Curses":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def register(bot: Bot) -> None:
    engine = bot.register("curse", HELP, disable_on_default=True)
    folder = Path(os.environ.get(DATA_ENV, "data/Curse"))
    opened: dict[str, Curses] = {}
    buckets: dict[int, TokenBucket] = {}

    def getdb(ctx: Context) -> bool:
        if "db" not in opened:
            try:
                folder.mkdir(parents=True, exist_ok=True)
                curses = Curses(folder / "curse.db")
                log.info("[curse]加载 %d 条骂人语录", curses.count())
            except (OSError, sqlite3.Error) as err:
                ctx.send(text("ERROR:", err))
                return False
            opened["db"] = curses
        ctx.state["curses"] = opened["db"]
        return True

    def limit_by_user(ctx: Context) -> bool:
        return buckets.setdefault(ctx.event.user_id, TokenBucket(*USER_LIMIT)).acquire()

    def curse(ctx: Context, level: str, pause: bool) -> None:
        if pause:
            bot.sleep(1 + random.random())
        try:
            line = ctx.state["curses"].random_by_level(level)
        except LookupError as err:
            ctx.send(text("ERROR:", err))
            return
        ctx.send(reply(ctx.event.message_id), text(line))

    engine.on_full_match("骂我", getdb, limit_by_user).handle(lambda ctx: curse(ctx, MIN_LEVEL, True))
    engine.on_full_match("大力骂我", getdb, limit_by_user).handle(lambda ctx: curse(ctx, MAX_LEVEL, True))
    engine.on_keyword(TRIGGERS, only_to_me, getdb).handle(lambda ctx: curse(ctx, MAX_LEVEL, False))