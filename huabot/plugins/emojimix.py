"""Combine two emoji into one picture."""

from __future__ import annotations

import logging
from typing import Any, Iterable

import requests

from huabot.core import Bot, Context, image
from huabot.plugins.chat import TokenBucket

log = logging.getLogger(__name__)

BED = "https://www.gstatic.com/android/keyboard/emojikitchen/{}/u{:x}/u{:x}_u{:x}.png"
HELP = "合成emoji\n- [emoji][emoji]"
TIMEOUT = 10
USER_LIMIT = (5, 1)

_A = 20201001
_B = 20210218
_C = 20210521
_D = 20210831
_E = 20211115

# code point -> date folder of its drawings
EMOJIS: dict[int, int] = {
    128516: _A, 128512: _A, 128578: _A, 128579: _A, 128521: _A, 128522: _A, 128518: _A,
    128515: _A, 128513: _A, 129315: _A, 128517: _A, 128514: _A, 128519: _A, 129392: _A,
    128525: _A, 128536: _A, 129321: _A, 128535: _A, 128538: _A, 128537: _A, 128539: _A,
    128541: _A, 128523: _A, 129394: _A, 129297: _A, 128540: _A, 129303: _A, 129323: _A,
    129300: _A, 129325: _A, 129320: _A, 129296: _A, 128528: _A, 128529: _A, 128566: _A,
    129322: _A, 128527: _A, 128530: _A, 128580: _A, 128556: _A, 128558: _B, 129317: _A,
    128524: _A, 128532: _A, 128554: _A, 129316: _A, 128564: _A, 128567: _A, 129298: _A,
    129301: _A, 129314: _A, 129326: _A, 129319: _A, 129397: _A, 129398: _A, 128565: _A,
    129396: _A, 129327: _A, 129312: _A, 129395: _A, 129400: _A, 129488: _A, 128526: _A,
    128533: _A, 128543: _A, 128577: _A, 128559: _A, 128562: _A, 129299: _A, 128563: _A,
    129402: _A, 128551: _A, 128552: _A, 128550: _A, 128560: _A, 128549: _A, 128557: _A,
    128553: _A, 128546: _A, 128547: _A, 128544: _A, 128531: _A, 128534: _A, 129324: _A,
    128542: _A, 128555: _A, 128548: _A, 129393: _A, 128169: _A, 128545: _A, 128561: _A,
    128127: _A, 128128: _A, 128125: _A, 128520: _A, 129313: _A, 128123: _A, 129302: _A,
    128175: _A, 128064: _A, 127801: _A, 127804: _A, 127799: _A, 127797: _A, 127821: _A,
    127874: _A, 127751: _D, 129473: _A, 127911: _C, 127800: _B, 129440: _A, 128144: _A,
    127789: _A, 128139: _A, 127875: _A, 129472: _A, 9749: _A, 127882: _A, 127880: _A,
    9924: _A, 128142: _A, 127794: _A, 129410: _B, 128584: _A, 128148: _A, 128140: _A,
    128152: _A, 128159: _A, 128158: _A, 128147: _A, 128149: _A, 128151: _A, 129505: _A,
    128155: _A, 10084: _B, 128156: _A, 128154: _A, 128153: _A, 129294: _A, 129293: _A,
    128420: _A, 128150: _A, 128157: _A, 127873: _E, 129717: _E, 127942: _E, 127838: _D,
    128240: _A, 128302: _A, 128081: _A, 128055: _A, 129412: _D, 127771: _A, 129420: _A,
    129668: _C, 128171: _A, 128049: _A, 129409: _A, 128293: _A, 128038: _D, 129415: _A,
    129417: _D, 127752: _A, 128053: _A, 128029: _A, 128034: _A, 128025: _A, 129433: _A,
    128016: _D, 128060: _A, 128040: _A, 129445: _A, 128059: _D, 128048: _A, 129428: _A,
    128054: _E, 128041: _E, 129437: _E, 128039: _E, 128012: _B, 128045: _A, 128031: _D,
    127757: _A, 127774: _A, 127775: _A, 11088: _A, 127772: _A, 129361: _A, 127820: _E,
    127827: _D, 127819: _C, 127818: _E,
}

# QQ face id -> emoji code point
QQFACE: dict[int, int] = {
    0: 128558, 1: 128556, 2: 128525, 4: 128526, 5: 128557, 6: 129402, 7: 129296,
    8: 128554, 11: 128545, 12: 128539, 13: 128513, 14: 128578, 15: 128577, 16: 128526,
    19: 129326, 20: 129325, 21: 128522, 23: 128533, 24: 128523, 27: 128531, 28: 128516,
    31: 129324, 32: 129300, 33: 129323, 34: 128565, 35: 128547, 37: 128128, 46: 128055,
    53: 127874, 59: 128169, 60: 9749, 63: 127801, 66: 10084, 67: 128148, 69: 127873,
    74: 127774, 75: 127772, 96: 128517, 104: 129393, 109: 128535, 110: 128562, 111: 129402,
    172: 128539, 182: 128514, 187: 128123, 247: 128567, 272: 128579, 320: 129395, 325: 128561,
}


def face_to_emoji(segment: Any) -> int:
    """The emoji code point of a one-character text or a known face; 0 otherwise."""
    if segment.type == "text":
        chars = segment.data.get("text", "")
        return ord(chars) if len(chars) == 1 else 0
    if segment.type != "face":
        return 0
    try:
        face = int(segment.data.get("id", ""))
    except (TypeError, ValueError):
        return 0
    return QQFACE.get(face, 0)


def match(segments: Iterable[Any], raw: str) -> tuple[int, int] | None:
    """The two emoji a message consists of, or None."""
    segments = list(segments)
    if len(segments) == 2:
        first, second = (face_to_emoji(s) for s in segments)
        if first in EMOJIS and second in EMOJIS:
            return first, second
        return None
    if len(raw) == 2:
        first, second = ord(raw[0]), ord(raw[1])
        if first in EMOJIS and second in EMOJIS:
            return first, second
    return None


def mix_urls(first: int, second: int) -> tuple[str, str]:
    """The two places a drawing of the pair may be found, in order to try."""
    return (
        BED.format(EMOJIS[first], first, first, second),
        BED.format(EMOJIS[second], second, second, first),
    )


def _exists(url: str) -> bool:
    try:
        resp = requests.head(url, timeout=TIMEOUT)
    except requests.RequestException:
        return False
    return resp.status_code == 200


def register(bot: Bot) -> None:
    engine = bot.register("emojimix", HELP)
    buckets: dict[int, TokenBucket] = {}

    def matched(ctx: Context) -> bool:
        segments = list(ctx.event.message)
        raw = ctx.extract_plain_text() if all(s.type == "text" for s in segments) else ""
        pair = match(segments, raw)
        if pair is None:
            return False
        ctx.state["emojimix"] = pair
        return True

    def limit_by_user(ctx: Context) -> bool:
        return buckets.setdefault(ctx.event.user_id, TokenBucket(*USER_LIMIT)).acquire()

    @engine.on_message(matched, limit_by_user).handle
    def _mix(ctx: Context) -> None:
        first, second = ctx.state["emojimix"]
        log.debug("[emojimix] match: %s %s", first, second)
        for url in mix_urls(first, second):
            if _exists(url):
                ctx.send(image(url))
                return