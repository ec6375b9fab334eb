"""Short couple stories with chosen names filled in."""

from __future__ import annotations

import logging
import os
import re
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from huabot.core import Bot, Context, Database, only_group, reply, text

log = logging.getLogger(__name__)

TABLE = "cp_story"
DATA_ENV = "HUABOT_CPSTORY_DATA"
HELP = "cp短打\n- 组cp[@xxx][@xxx]\n- 磕cp大老师 雪乃"
_NUMBER = re.compile(r"[0-9]+")


@dataclass
class CpStory:
    id: int
    gong: str
    shou: str
    story: str


class CpStories:
    """The story table of a sqlite file."""

    def __init__(self, path: str | Path) -> None:
        self.db = Database(path)
        self.db.create(TABLE, ("id", "gong", "shou", "story"))

    def random(self) -> CpStory:
        """Any story; LookupError when the table is empty."""
        found = self.db.pick(TABLE)
        return CpStory(int(found["id"] or 0), found["gong"] or "", found["shou"] or "", found["story"] or "")

    def count(self) -> int:
        return self.db.count(TABLE)

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "CpStories":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def fill_story(story: CpStory, gong: str, shou: str) -> str:
    """The story with its placeholders and original names replaced."""
    result = story.story.replace("<攻>", gong).replace("<受>", shou)
    if story.gong:
        result = result.replace(story.gong, gong)
    if story.shou:
        result = result.replace(story.shou, gong)
    return result


def _name(ctx: Context, uid: str) -> str:
    if ctx.event.nickname and uid == str(ctx.event.user_id):
        return ctx.event.nickname
    return uid


def register(bot: Bot) -> None:
    engine = bot.register("cpstory", HELP)
    folder = Path(os.environ.get(DATA_ENV, "data/CpStory"))
    opened: dict[str, CpStories] = {}

    def getdb(ctx: Context) -> bool:
        if "db" not in opened:
            try:
                folder.mkdir(parents=True, exist_ok=True)
                stories = CpStories(folder / "cp.db")
                log.info("[cpstory]读取%d条故事", stories.count())
            except (OSError, sqlite3.Error) as err:
                ctx.send(text("ERROR:", err))
                return False
            opened["db"] = stories
        ctx.state["stories"] = opened["db"]
        return True

    def story_or_error(ctx: Context) -> CpStory | None:
        try:
            return ctx.state["stories"].random()
        except LookupError as err:
            ctx.send(text("ERROR:", err))
            return None

    @engine.on_prefix("组cp", only_group, getdb).handle
    def _pair(ctx: Context) -> None:
        ids = [s.data.get("qq", "") for s in ctx.event.message if s.type == "at"]
        ids += _NUMBER.findall(ctx.state["args"])
        if len(ids) < 2:
            return
        story = story_or_error(ctx)
        if story is not None:
            ctx.send(text(fill_story(story, _name(ctx, ids[0]), _name(ctx, ids[1]))))

    @engine.on_prefix("磕cp", getdb).handle
    def _ship(ctx: Context) -> None:
        params = ctx.state["args"].split(" ")
        if len(params) < 2:
            ctx.send(reply(ctx.event.message_id), text("请用空格分开两个人名"))
            return
        story = story_or_error(ctx)
        if story is not None:
            ctx.send(text(fill_story(story, params[0], params[1])))