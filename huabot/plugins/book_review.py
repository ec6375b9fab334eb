"""Book reviews from a bundled database."""

from __future__ import annotations

import logging
import os
import sqlite3
from pathlib import Path

from huabot.core import Bot, Context, Database, text

log = logging.getLogger(__name__)

TABLE = "bookreview"
DATA_ENV = "HUABOT_BOOKREVIEW_DATA"
HELP = "哀伤雪刃推书记录\n- 书评[xxx]\n- 随机书评"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class BookReviews:
    """The review table of a sqlite file."""

    def __init__(self, path: str | Path) -> None:
        self.db = Database(path)
        self.db.create(TABLE, ("id", "bookreview"))

    def by_keyword(self, keyword: str) -> str:
        """A review containing the keyword; LookupError when there is none."""
        found = self.db.find(TABLE, "bookreview LIKE ? ESCAPE '\\'", (f"%{_escape_like(keyword)}%",))
        return found["bookreview"]

    def random(self) -> str:
        """Any review; LookupError when the table is empty."""
        return self.db.pick(TABLE)["bookreview"]

    def count(self) -> int:
        return self.db.count(TABLE)

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "BookReviews":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def register(bot: Bot) -> None:
    engine = bot.register("bookreview", HELP)
    folder = Path(os.environ.get(DATA_ENV, "data/BookReview"))
    opened: dict[str, BookReviews] = {}

    def getdb(ctx: Context) -> bool:
        if "db" not in opened:
            try:
                folder.mkdir(parents=True, exist_ok=True)
                reviews = BookReviews(folder / "bookreview.db")
                log.info("[bookreview]读取%d条书评", reviews.count())
            except (OSError, sqlite3.Error) as err:
                ctx.send(text("ERROR:", err))
                return False
            opened["db"] = reviews
        ctx.state["reviews"] = opened["db"]
        return True

    @engine.on_regex("^书评([\u4e00-\u9fa5A-Za-z0-9]{1,25})$", getdb).handle
    def _by_keyword(ctx: Context) -> None:
        try:
            review = ctx.state["reviews"].by_keyword(ctx.state["regex_matched"][1])
        except LookupError as err:
            ctx.send(text("ERROR:", err))
            return
        ctx.send(text(review))

    @engine.on_full_match("随机书评", getdb).handle
    def _random(ctx: Context) -> None:
        try:
            review = ctx.state["reviews"].random()
        except LookupError as err:
            ctx.send(text("ERROR:", err))
            return
        ctx.send(text(review))