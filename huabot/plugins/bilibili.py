"""Streamer lookups and the "which streamers does this user follow" report."""

from __future__ import annotations

import os
import re
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import requests

from huabot.core import Bot, Context, super_user_permission, text
from huabot.plugins.bilibili_api import (
    BilibiliError,
    Medal,
    UserInfo,
    card,
    fans_api,
    followings,
    medal_wall,
    search,
    sort_medals,
)

VTB_URLS = (
    "https://api.vtbs.moe/v1/short",
    "https://api.tokyo.vtbs.moe/v1/short",
    "https://vtbs.musedash.moe/v1/short",
)
COOKIE_KEY = "bilbili_cookie"
DATA_ENV = "HUABOT_BILIBILI_DATA"
MAX_SHOWN = 50
HELP = (
    "bilibili\n"
    "- >vup info [xxx]\n"
    "- >user info [xxx]\n"
    "- 查成分 [xxx]\n"
    "- 设置b站cookie SESSDATA=xxx\n"
    "- 更新vup"
)
_ERRORS = (requests.RequestException, ValueError, BilibiliError, sqlite3.Error)
_DIGITS = re.compile(r"[0-9]+")
_CHUNK = 500


@dataclass
class Vup:
    mid: int
    uname: str
    roomid: int = 0


class VupDB:
    """Known streamers and plugin settings in sqlite."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._conn = sqlite3.connect(str(self.path), check_same_thread=False)
        with self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS vup (mid INTEGER PRIMARY KEY, uname TEXT, roomid INTEGER)"
            )
            self._conn.execute("CREATE TABLE IF NOT EXISTS config (key TEXT PRIMARY KEY, value TEXT)")

    def insert_vup(self, mid: int, uname: str, roomid: int) -> None:
        """Add a streamer unless one with that mid is already known."""
        with self._conn:
            self._conn.execute(
                "INSERT OR IGNORE INTO vup (mid, uname, roomid) VALUES (?, ?, ?)", (mid, uname, roomid)
            )

    def filter_vups(self, ids: Iterable[int]) -> list[Vup]:
        """The known streamers among the given ids."""
        wanted = list(dict.fromkeys(ids))
        found: list[Vup] = []
        for start in range(0, len(wanted), _CHUNK):
            chunk = wanted[start:start + _CHUNK]
            marks = ", ".join("?" for _ in chunk)
            rows = self._conn.execute(
                f"SELECT mid, uname, roomid FROM vup WHERE mid IN ({marks})", chunk
            ).fetchall()
            found.extend(Vup(*row) for row in rows)
        return sorted(found, key=lambda v: v.mid)

    def set_cookie(self, cookie: str) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO config (key, value) VALUES (?, ?)", (COOKIE_KEY, cookie)
            )

    def get_cookie(self) -> str:
        row = self._conn.execute("SELECT value FROM config WHERE key = ?", (COOKIE_KEY,)).fetchone()
        return row[0] if row else ""

    def update_vups(self) -> None:
        """Fetch the streamer lists and add every streamer in them."""
        for url in VTB_URLS:
            resp = requests.get(url, timeout=60)
            resp.raise_for_status()
            data = resp.json()
            entries = data.values() if isinstance(data, dict) else data
            for entry in entries:
                if not isinstance(entry, dict):
                    continue
                self.insert_vup(
                    int(entry.get("mid") or 0),
                    str(entry.get("uname", "")),
                    int(entry.get("roomid") or 0),
                )

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "VupDB":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def int_to_rgb(value: int) -> tuple[int, int, int]:
    """Split a packed 0xRRGGBB colour into (r, g, b)."""
    v = value & 0xFFFFFFFFFFFFFFFF
    return (v >> 16) & 0xFF, (v >> 8) & 0xFF, v & 0xFF


def merge_vups(vups: Iterable[Vup], medals: Iterable[Medal]) -> list[Vup]:
    """Medal holders first, then the other streamers without duplicates."""
    medals = list(medals)
    front = [Vup(m.mid, m.uname) for m in medals]
    mids = {m.mid for m in medals}
    return front + [v for v in vups if v.mid not in mids]


def _report(user: UserInfo, vups: list[Vup], vup_count: int, medals: list[Medal]) -> str:
    by_mid = {m.mid: m for m in medals}
    total = len(user.attentions)
    ratio = f"{vup_count / total * 100:.2f}" if total else "NaN"
    lines = [
        f"{user.name} {user.mid}",
        f"粉丝：{user.fans}",
        f"关注：{total}",
        f"管人痴成分：{ratio}%（{vup_count}/{total}）",
        "注册日期：" + time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(user.regtime)),
        "查询日期：" + time.strftime("%Y-%m-%d"),
    ]
    for v in vups:
        line = f"{v.uname} {v.mid}"
        medal = by_mid.get(v.mid)
        if medal is not None:
            line += f" [{medal.medal_name} {medal.level}]"
        lines.append(line)
    return "\n".join(lines)


def register(bot: Bot) -> None:
    engine = bot.register("bilibili", HELP)
    folder = Path(os.environ.get(DATA_ENV, "data/Bilibili"))
    opened: dict[str, VupDB] = {}

    def getdb(ctx: Context) -> bool:
        if "db" not in opened:
            try:
                folder.mkdir(parents=True, exist_ok=True)
                opened["db"] = VupDB(folder / "bilibili.db")
            except (OSError, sqlite3.Error) as err:
                ctx.send(text("ERROR:", err))
                return False
        ctx.state["vupdb"] = opened["db"]
        return True

    def resolve_uid(ctx: Context) -> bool:
        keyword = ctx.state["regex_matched"][1]
        if _DIGITS.fullmatch(keyword):
            ctx.state["uid"] = keyword
            return True
        try:
            ctx.state["uid"] = str(search(keyword)[0].mid)
        except _ERRORS as err:
            ctx.send(text("ERROR:", err))
            return False
        return True

    @engine.on_regex(r"^>user info\s?(.{1,25})$", getdb).handle
    def _user_info(ctx: Context) -> None:
        try:
            found = search(ctx.state["regex_matched"][1])[0]
        except _ERRORS as err:
            ctx.send(text("ERROR:", err))
            return
        follow = ""
        try:
            follow = followings(str(found.mid), ctx.state["vupdb"].get_cookie())
        except _ERRORS as err:
            ctx.send(text("ERROR:", err))
        sexes = ["", "男", "女", "未知"]
        sex = sexes[found.gender] if 0 <= found.gender < len(sexes) else ""
        ctx.send(text(
            "search: ", found.mid, "\n",
            "name: ", found.uname, "\n",
            "sex: ", sex, "\n",
            "sign: ", found.usign, "\n",
            "level: ", found.level, "\n",
            "follow: ", follow,
        ))

    @engine.on_regex(r"^>vup info\s?(.{1,25})$").handle
    def _vup_info(ctx: Context) -> None:
        try:
            found = search(ctx.state["regex_matched"][1])[0]
            fo = fans_api(str(found.mid))
        except _ERRORS as err:
            ctx.send(text("ERROR:", err))
            return
        ctx.send(text(
            "search: ", fo.mid, "\n",
            "名字: ", fo.uname, "\n",
            "当前粉丝数: ", fo.follower, "\n",
            "24h涨粉数: ", fo.rise, "\n",
            "视频投稿数: ", fo.video, "\n",
            "直播间id: ", fo.roomid, "\n",
            "舰队: ", fo.guard_num, "\n",
            "直播总排名: ", fo.area_rank, "\n",
            "数据来源: ", "https://vtbs.moe/detail/", fo.mid, "\n",
            "数据获取时间: ", time.strftime("%Y-%m-%d %H:%M:%S"),
        ))

    @engine.on_regex(r"^查成分\s?(.{1,25})$", getdb, resolve_uid).handle
    def _composition(ctx: Context) -> None:
        uid = ctx.state["uid"]
        db: VupDB = ctx.state["vupdb"]
        try:
            user = card(uid)
            vups = db.filter_vups(user.attentions)
        except _ERRORS as err:
            ctx.send(text("ERROR:", err))
            return
        vup_count = len(vups)
        try:
            medals = sort_medals(medal_wall(uid, db.get_cookie()))
        except _ERRORS as err:
            ctx.send(text("ERROR:", err))
            medals = []
        merged = merge_vups(vups, medals)
        if len(merged) > MAX_SHOWN:
            ctx.send(text(user.name + "关注的up主太多了，只展示前50个up"))
            merged = merged[:MAX_SHOWN]
        ctx.send(text(_report(user, merged, vup_count, medals)))

    @engine.on_regex(r"^设置b站cookie?\s+(.{1,100})$", super_user_permission, getdb).handle
    def _set_cookie(ctx: Context) -> None:
        cookie = ctx.state["regex_matched"][1]
        try:
            ctx.state["vupdb"].set_cookie(cookie)
        except sqlite3.Error as err:
            ctx.send(text("ERROR:", err))
            return
        ctx.send(text("成功设置b站cookie为" + cookie))

    @engine.on_full_match("更新vup", super_user_permission, getdb).handle
    def _update(ctx: Context) -> None:
        ctx.send(text("少女祈祷中..."))
        try:
            ctx.state["vupdb"].update_vups()
        except _ERRORS as err:
            ctx.send(text("ERROR:", err))
            return
        ctx.send(text("vup已更新"))