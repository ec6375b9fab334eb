"""Daily fortune slips with a background chosen per group."""

from __future__ import annotations

import hashlib
import json
import os
import random
import shutil
import zipfile
from datetime import date
from pathlib import Path
from typing import Any

from huabot.core import Bot, Context, image, text
from huabot.plugins.chat import TokenBucket

TABLE = (
    "车万", "DC4", "爱因斯坦", "星空列车", "樱云之恋", "富婆妹", "李清歌", "公主连结", "原神",
    "明日方舟", "碧蓝航线", "碧蓝幻想", "战双", "阴阳师", "赛马娘", "东方归言录", "奇异恩典", "夏日口袋", "ASoul",
)
INDEX = {name: i for i, name in enumerate(TABLE)}
DEFAULT_KIND = TABLE[0]
COLUMN = 9
TEXT_X = 115.0
TEXT_Y = 320.0
DATA_ENV = "HUABOT_FORTUNE_DATA"
GROUP_LIMIT = (5, 1)
HELP = (
    "每日运势: \n"
    "- 运势 | 抽签\n"
    "- 设置底图[" + " | ".join(TABLE) + "]"
)


def offset(total: int, now: int, distance: float) -> float:
    """Distance of position `now` from the middle of `total` positions."""
    if total % 2 == 0:
        return (now - total // 2 - 1) * distance
    return (now - total // 2 - 1.5) * distance


def rows_num(total: int, div: int) -> int:
    """How many groups of `div` hold `total` items."""
    return -(-total // div)


def text_layout(text: str, char_width: float, char_height: float) -> list[tuple[str, float, float]]:
    """Where each character of a slip goes, in vertical columns from right to left."""
    chars = list(text)
    xsum = rows_num(len(chars), COLUMN)
    placed: list[tuple[str, float, float]] = []
    if xsum == 2:
        div = rows_num(len(chars), 2)
        for i, ch in enumerate(chars):
            xnow = rows_num(i + 1, div)
            ysum = min(len(chars) - (xnow - 1) * div, div)
            ynow = i % div + 1
            x = -offset(xsum, xnow, char_width) + TEXT_X
            row = ynow if xnow == 1 else ynow + (COLUMN - ysum)
            placed.append((ch, x, offset(COLUMN, row, char_height) + TEXT_Y))
        return placed
    for i, ch in enumerate(chars):
        xnow = rows_num(i + 1, COLUMN)
        ysum = min(len(chars) - (xnow - 1) * COLUMN, COLUMN)
        ynow = i % COLUMN + 1
        placed.append((ch, -offset(xsum, xnow, char_width) + TEXT_X, offset(ysum, ynow, char_height) + TEXT_Y))
    return placed


def set_background(control: Any, gid: int, name: str) -> None:
    """Store the chosen background for a group; KeyError for unknown names."""
    if name not in INDEX:
        raise KeyError(name)
    control.set_data(gid, INDEX[name] & 0xFF)


def background_kind(control: Any, gid: int) -> str:
    """The background chosen for a group, or the default."""
    if control is None:
        return DEFAULT_KIND
    value = control.get_data(gid) & 0xFF
    return TABLE[value] if value < len(TABLE) else DEFAULT_KIND


def _rand_per_day(uid: int, n: int) -> int:
    return random.Random(f"{uid}{date.today():%Y%m%d}").randrange(n)


def _extract_background(zip_path: Path, uid: int, cache: Path) -> Path:
    with zipfile.ZipFile(zip_path) as archive:
        members = [info for info in archive.infolist() if not info.is_dir()]
        if not members:
            raise ValueError(f"no pictures in {zip_path.name}")
        chosen = members[_rand_per_day(uid, len(members))]
        digest = hashlib.md5(f"{zip_path}{chosen.filename}".encode("utf-8")).hexdigest()
        target = cache / (digest + Path(chosen.filename).suffix)
        if not target.exists():
            target.write_bytes(archive.read(chosen))
    return target


def _gid(ctx: Context) -> int:
    return ctx.event.group_id if ctx.event.group_id > 0 else -ctx.event.user_id


def register(bot: Bot) -> None:
    engine = bot.register("fortune", HELP)
    folder = Path(os.environ.get(DATA_ENV, "data/Fortune"))
    cache = folder / "cache"
    shutil.rmtree(cache, ignore_errors=True)
    cache.mkdir(parents=True, exist_ok=True)
    slips: list[dict[str, str]] = []
    buckets: dict[int, TokenBucket] = {}

    def load_slips(ctx: Context) -> bool:
        if not slips:
            try:
                loaded = json.loads((folder / "text.json").read_text(encoding="utf-8"))
            except (OSError, ValueError) as err:
                ctx.send(text("ERROR:", err))
                return False
            if not loaded:
                ctx.send(text("ERROR:", "no fortune slips"))
                return False
            slips.extend(loaded)
        return True

    def limit_by_group(ctx: Context) -> bool:
        return buckets.setdefault(ctx.event.group_id, TokenBucket(*GROUP_LIMIT)).acquire()

    @engine.on_regex(r"^设置底图\s?(.*)").handle
    def _set(ctx: Context) -> None:
        name = ctx.state["regex_matched"][1]
        if name not in INDEX:
            ctx.send(text("没有这个底图哦～"))
            return
        control = ctx.state.get("manager")
        if control is None:
            ctx.send(text("设置失败: 找不到插件"))
            return
        try:
            set_background(control, _gid(ctx), name)
        except Exception as err:  # storage backends raise their own errors
            ctx.send(text("设置失败:", err))
            return
        ctx.send(text("设置成功~"))

    @engine.on_full_match(["运势", "抽签"], load_slips, limit_by_group).handle
    def _fortune(ctx: Context) -> None:
        uid = ctx.event.user_id
        kind = background_kind(ctx.state.get("manager"), _gid(ctx))
        try:
            picture = _extract_background(folder / f"{kind}.zip", uid, cache)
        except (OSError, zipfile.BadZipFile, ValueError) as err:
            ctx.send(text("ERROR:", err))
            return
        slip = slips[_rand_per_day(uid, len(slips))]
        ctx.send(image(picture.resolve().as_uri()), text(slip.get("title", ""), "\n", slip.get("content", "")))