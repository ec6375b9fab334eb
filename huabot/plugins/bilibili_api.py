"""Clients for the public user, follower, card and medal endpoints."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable

import requests

SEARCH_URL = "http://api.bilibili.com/x/web-interface/search/type"
FANS_URL = "https://api.vtbs.moe/v1/detail/"
FOLLOWINGS_URL = "https://api.bilibili.com/x/relation/same/followings"
CARD_URL = "https://account.bilibili.com/api/member/getCardByMid"
MEDAL_WALL_URL = "https://api.live.bilibili.com/xlive/web-ucenter/user/MedalWall"
TIMEOUT = 30

NEED_COOKIE_MESSAGE = '该api需要设置b站cookie，请发送命令设置cookie，例如"设置b站cookie SESSDATA=xxx"'


class BilibiliError(Exception):
    """An API call answered with an error."""


class NeedCookieError(BilibiliError):
    """The API refuses to answer without a login cookie."""

    def __init__(self, message: str = NEED_COOKIE_MESSAGE) -> None:
        super().__init__(message)


class UserNotFound(BilibiliError, LookupError):
    """A search found nobody."""


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _get_json(url: str, params: dict[str, Any] | None = None, cookie: str | None = None,
              check_status: bool = True) -> Any:
    headers = {"cookie": cookie} if cookie is not None else None
    resp = requests.get(url, params=params, headers=headers, timeout=TIMEOUT)
    if check_status:
        resp.raise_for_status()
    return resp.json()


def _check_code(data: dict[str, Any]) -> None:
    code = _int(data.get("code"))
    if code == -101:
        raise NeedCookieError()
    if code != 0:
        raise BilibiliError(str(data.get("message", "")))


@dataclass
class SearchResult:
    mid: int
    uname: str
    gender: int = 0
    usign: str = ""
    level: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "SearchResult":
        return cls(
            mid=_int(data.get("mid")),
            uname=str(data.get("uname", "")),
            gender=_int(data.get("gender")),
            usign=str(data.get("usign", "")),
            level=_int(data.get("level")),
        )


@dataclass
class Follower:
    mid: int
    uname: str
    video: int = 0
    roomid: int = 0
    rise: int = 0
    follower: int = 0
    guard_num: int = 0
    area_rank: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Follower":
        return cls(
            mid=_int(data.get("mid")),
            uname=str(data.get("uname", "")),
            video=_int(data.get("video")),
            roomid=_int(data.get("roomid")),
            rise=_int(data.get("rise")),
            follower=_int(data.get("follower")),
            guard_num=_int(data.get("guardNum")),
            area_rank=_int(data.get("areaRank")),
        )


@dataclass
class UserInfo:
    name: str
    mid: str
    face: str = ""
    fans: int = 0
    regtime: int = 0
    attentions: list[int] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "UserInfo":
        return cls(
            name=str(data.get("name", "")),
            mid=str(data.get("mid", "")),
            face=str(data.get("face", "")),
            fans=_int(data.get("fans")),
            regtime=_int(data.get("regtime")),
            attentions=[_int(a) for a in data.get("attentions") or []],
        )


@dataclass
class Medal:
    uname: str
    mid: int
    medal_name: str = ""
    level: int = 0
    color_start: int = 0
    color_end: int = 0
    color_border: int = 0

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Medal":
        info = data.get("medal_info") or {}
        return cls(
            uname=str(data.get("target_name", "")),
            mid=_int(info.get("target_id")),
            medal_name=str(info.get("medal_name", "")),
            level=_int(info.get("level")),
            color_start=_int(info.get("medal_color_start")),
            color_end=_int(info.get("medal_color_end")),
            color_border=_int(info.get("medal_color_border")),
        )


def search(keyword: str) -> list[SearchResult]:
    """Users whose name matches the keyword; raises UserNotFound when none do."""
    data = _get_json(SEARCH_URL, {"search_type": "bili_user", "keyword": keyword})
    body = data.get("data") or {}
    if _int(body.get("numResults")) == 0:
        raise UserNotFound("查无此人")
    results = [SearchResult.from_json(r) for r in body.get("result") or []]
    if not results:
        raise UserNotFound("查无此人")
    return results


def fans_api(uid: str) -> Follower:
    """Follower statistics of a streamer."""
    return Follower.from_json(_get_json(FANS_URL + str(uid)))


def followings(uid: str, cookie: str) -> str:
    """The names of accounts followed by both, as a JSON array."""
    data = _get_json(FOLLOWINGS_URL, {"vmid": uid}, cookie=cookie, check_status=False)
    _check_code(data)
    items = (data.get("data") or {}).get("list")
    if items is None:
        return ""
    names = [item["uname"] for item in items if isinstance(item, dict) and "uname" in item]
    return json.dumps(names, ensure_ascii=False, separators=(",", ":"))


def card(uid: str) -> UserInfo:
    """Profile card of a user."""
    data = _get_json(CARD_URL, {"mid": uid})
    return UserInfo.from_json(data.get("card") or {})


def medal_wall(uid: str, cookie: str) -> list[Medal]:
    """Fan medals the user wears."""
    data = _get_json(MEDAL_WALL_URL, {"target_id": uid}, cookie=cookie, check_status=False)
    _check_code(data)
    items = (data.get("data") or {}).get("list") or []
    return [Medal.from_json(item) for item in items]


def sort_medals(medals: Iterable[Medal]) -> list[Medal]:
    """Medals from the highest level down."""
    return sorted(medals, key=lambda m: m.level, reverse=True)