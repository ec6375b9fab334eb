"""Turn text into emoji by the sound of its characters."""

from __future__ import annotations

import logging
import os
import sqlite3
from pathlib import Path

from huabot.core import Bot, Context, Database, text

log = logging.getLogger(__name__)

DATA_ENV = "HUABOT_CHOUXIANGHUA_DATA"
HELP = "抽象话\n- 抽象翻译xxx"
PATTERN = r"^抽象翻译([\s\w\u3000-\u303f\uff00-\uffef!-/:-@\[-`{-~]+)$"


class Dictionary:
    """Pinyin of characters and emoji for pinyin, from a sqlite file."""

    def __init__(self, path: str | Path) -> None:
        self.db = Database(path)
        self.db.create("pinyin", ("word", "pronunciation"))
        self.db.create("emoji", ("pronunciation", "emoji"))

    def pinyin(self, word: str) -> str:
        """The pronunciation of a character, or an empty string."""
        try:
            return self.db.find("pinyin", "word = ?", (word,))["pronunciation"]
        except LookupError:
            return ""

    def emoji(self, pronun: str) -> str:
        """The emoji that sounds like the pronunciation, or an empty string."""
        try:
            return self.db.find("emoji", "pronunciation = ?", (pronun,))["emoji"]
        except LookupError:
            return ""

    def count(self) -> int:
        return self.db.count("pinyin")

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "Dictionary":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def translate(text: str, dictionary: Dictionary) -> str:
    """Replace characters, preferring pairs, by emoji of the same sound."""
    chars = list(text)
    out: list[str] = []
    i = 0
    while i < len(chars):
        if i < len(chars) - 1:
            pair = dictionary.emoji(dictionary.pinyin(chars[i]) + dictionary.pinyin(chars[i + 1]))
            if pair:
                out.append(pair)
                i += 2
                continue
        single = dictionary.emoji(dictionary.pinyin(chars[i]))
        out.append(single or chars[i])
        i += 1
    return "".join(out)


def register(bot: Bot) -> None:
    engine = bot.register("chouxianghua", HELP)
    folder = Path(os.environ.get(DATA_ENV, "data/ChouXiangHua"))
    opened: dict[str, Dictionary] = {}

    def getdb(ctx: Context) -> bool:
        if "db" not in opened:
            try:
                folder.mkdir(parents=True, exist_ok=True)
                dictionary = Dictionary(folder / "cxh.db")
                log.info("[chouxianghua]读取%d条拼音", dictionary.count())
            except (OSError, sqlite3.Error) as err:
                ctx.send(text("ERROR:", err))
                return False
            opened["db"] = dictionary
        ctx.state["dictionary"] = opened["db"]
        return True

    @engine.on_regex(PATTERN, getdb).handle
    def _translate(ctx: Context) -> None:
        ctx.send(text(translate(ctx.state["regex_matched"][1], ctx.state["dictionary"])))