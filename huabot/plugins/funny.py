"""Jokes and compliments about a named person."""

from __future__ import annotations

import logging
import os
import sqlite3
from pathlib import Path

from huabot.core import Bot, Context, Database, text
from huabot.plugins.chat import TokenBucket

log = logging.getLogger(__name__)

TABLE = "jokes"
DATA_ENV = "HUABOT_FUNNY_DATA"
HELP = "讲个笑话\n- 讲个笑话[@xxx|qq号|人名] | 夸夸[@xxx|qq号|人名] "
USER_LIMIT = (5, 1)


class Jokes:
    """The joke table of a sqlite file."""

    def __init__(self, path: str | Path) -> None:
        self.db = Database(path)
        self.db.create(TABLE, ("id", "text"))

    def random(self) -> str:
        """Any joke; LookupError when the table is empty."""
        return self.db.pick(TABLE)["text"]

    def count(self) -> int:
        return self.db.count(TABLE)

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "Jokes":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def tell_joke(text: str, name: str) -> str:
    """The joke with every %name replaced by the name."""
    return text.replace("%name", name)


def _target_name(ctx: Context) -> str:
    mentioned = next((s.data.get("qq", "") for s in ctx.event.message if s.type == "at"), "")
    return ctx.state["args"] or mentioned or ctx.event.nickname


def register(bot: Bot) -> None:
    engine = bot.register("funny", HELP)
    folder = Path(os.environ.get(DATA_ENV, "data/Funny"))
    opened: dict[str, Jokes] = {}
    buckets: dict[int, TokenBucket] = {}

    def getdb(ctx: Context) -> bool:
        if "db" not in opened:
            try:
                folder.mkdir(parents=True, exist_ok=True)
                jokes = Jokes(folder / "jokes.db")
                log.info("[funny]加载 %d 个笑话", jokes.count())
            except (OSError, sqlite3.Error) as err:
                ctx.send(text("ERROR:", err))
                return False
            opened["db"] = jokes
        ctx.state["jokes"] = opened["db"]
        return True

    def limit_by_user(ctx: Context) -> bool:
        return buckets.setdefault(ctx.event.user_id, TokenBucket(*USER_LIMIT)).acquire()

    @engine.on_prefix(["讲个笑话", "夸夸"], getdb, limit_by_user).handle
    def _joke(ctx: Context) -> None:
        try:
            joke = ctx.state["jokes"].random()
        except LookupError as err:
            ctx.send(text("ERROR:", err))
            return
        ctx.send(text(tell_joke(joke, _target_name(ctx))))