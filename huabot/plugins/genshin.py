"""Ten-pull wishes drawn from a card pack archive."""

from __future__ import annotations

import os
import random
import re
import threading
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

from huabot.core import Bot, Context, reply, text
from huabot.plugins.chat import TokenBucket

DATA_ENV = "HUABOT_GENSHIN_DATA"
PREFIX_LEN = len("Genshin/")
USER_LIMIT = (5, 1)
HELP = "原神抽卡\n- 原神十连\n- 切换原神卡池"

FIVE = "five"
FIVE_ARMS = "five2"
FOUR = "four"
FOUR_ARMS = "four2"
THREE_ARMS = "Three"
_STAR_FILES = {"ThreeStar.png": 3, "FourStar.png": 4, "FiveStar.png": 5}
_NAME = re.compile(r"_(.*)\.png")


@dataclass
class Storage:
    """Per-group settings word; bit 0 selects the five-star pool."""

    value: int = 0

    def is_five_star_mode(self) -> bool:
        return self.value & 1 == 1

    def set_mode(self, five_stars: bool) -> bool:
        if five_stars:
            self.value |= 1
        else:
            self.value &= ~1
        return five_stars


@dataclass
class CardPool:
    """Entry names of a card pack, grouped by folder."""

    path: Path
    tree: dict[str, list[str]] = field(default_factory=dict)
    star_icons: dict[int, str] = field(default_factory=dict)

    def pick(self, folder: str, rng: random.Random) -> str:
        entries = self.tree.get(folder) or []
        if not entries:
            raise ValueError(f"no cards in folder {folder!r}")
        return rng.choice(entries)


def parse_zip(path: str | Path) -> CardPool:
    """Read the layout of a card pack archive."""
    pool = CardPool(Path(path))
    with zipfile.ZipFile(path) as archive:
        for info in archive.infolist():
            if info.is_dir():
                pool.tree[info.filename] = []
                continue
            name = info.filename[PREFIX_LEN:]
            cut = name.rfind("/")
            if cut < 0:
                pool.tree[name] = [name]
                continue
            folder = name[:cut]
            if not folder:
                continue
            pool.tree.setdefault(folder, []).append(name)
            if folder == "gacha" and name[cut + 1:] in _STAR_FILES:
                pool.star_icons[_STAR_FILES[name[cut + 1:]]] = name
    return pool


def _display_name(name: str) -> str:
    found = _NAME.search(name)
    if found is None:
        raise ValueError(f"card file without a name: {name!r}")
    return found[1]


def reply_text(names: list[str], num: int, previous: str) -> str:
    """The announcement of five-star characters (num 1) or weapons (num 2)."""
    if num == 1:
        head = "★五星角色★\n"
    elif num == 2 and previous:
        head = "\n★五星武器★\n"
    else:
        head = "★五星武器★\n"
    return head + "".join(_display_name(n) + " * " for n in names)


@dataclass
class Pull:
    name: str
    stars: int
    weapon: bool

    @property
    def display(self) -> str:
        return _display_name(self.name)

    @property
    def element(self) -> str:
        base = self.name[self.name.rfind("/") + 1:]
        cut = base.find("_")
        return base[:cut] + ".png" if cut >= 0 else ""


@dataclass
class DrawResult:
    pulls: list[Pull]
    text: str
    five_star: bool


class Gacha:
    """Draws from a pool; every ninth normal draw is sweetened by a five-star."""

    def __init__(self, pool: CardPool, rng: random.Random | None = None) -> None:
        self.pool = pool
        self.rng = rng or random.Random()
        self.total = 0
        self._lock = threading.Lock()

    def _five(self, got: dict[str, list[str]]) -> None:
        folder = FIVE if self.rng.randrange(2) == 0 else FIVE_ARMS
        got[folder].append(self.pool.pick(folder, self.rng))

    def _four(self, got: dict[str, list[str]]) -> None:
        folder = FOUR if self.rng.randrange(2) == 0 else FOUR_ARMS
        got[folder].append(self.pool.pick(folder, self.rng))

    def draw(self, nums: int, store: Storage) -> DrawResult:
        with self._lock:
            got: dict[str, list[str]] = {k: [] for k in (FIVE, FIVE_ARMS, FOUR, FOUR_ARMS, THREE_ARMS)}
            if self.total % 9 == 0:
                self._five(got)
                nums -= 1
            if store.is_five_star_mode():
                for _ in range(nums):
                    self._five(got)
            else:
                for _ in range(nums):
                    a = self.rng.randrange(1000)
                    if a <= 800:
                        folder = THREE_ARMS
                    elif a <= 885:
                        folder = FOUR
                    elif a <= 970:
                        folder = FOUR_ARMS
                    elif a <= 985:
                        folder = FIVE
                    else:
                        folder = FIVE_ARMS
                    got[folder].append(self.pool.pick(folder, self.rng))
                if not got[FOUR] and not got[FOUR_ARMS] and got[THREE_ARMS]:
                    got[THREE_ARMS].pop()
                    self._four(got)
                self.total += 1

        order = ((FIVE, 5, False), (FOUR, 4, False), (FIVE_ARMS, 5, True), (FOUR_ARMS, 4, True), (THREE_ARMS, 3, True))
        pulls = [Pull(name, stars, weapon) for folder, stars, weapon in order for name in got[folder]]
        announcement = ""
        if got[FIVE]:
            announcement += reply_text(got[FIVE], 1, announcement)
        if got[FIVE_ARMS]:
            announcement += reply_text(got[FIVE_ARMS], 2, announcement)
        return DrawResult(pulls, announcement, bool(got[FIVE] or got[FIVE_ARMS]))


def register(bot: Bot) -> None:
    engine = bot.register("genshin", HELP)
    folder = Path(os.environ.get(DATA_ENV, "data/Genshin"))
    holder: dict[str, Gacha] = {}
    buckets: dict[int, TokenBucket] = {}

    def limit_by_user(ctx: Context) -> bool:
        return buckets.setdefault(ctx.event.user_id, TokenBucket(*USER_LIMIT)).acquire()

    def load_pool(ctx: Context) -> bool:
        if "gacha" not in holder:
            try:
                holder["gacha"] = Gacha(parse_zip(folder / "Genshin.zip"))
            except (OSError, zipfile.BadZipFile) as err:
                ctx.send(text("ERROR:", err))
                return False
        return True

    @engine.on_full_match("切换原神卡池", limit_by_user).handle
    def _toggle(ctx: Context) -> None:
        control = ctx.state.get("manager")
        if control is None:
            ctx.send(text("找不到服务!"))
            return
        gid = ctx.group_key()
        store = Storage(control.get_data(gid))
        five = store.set_mode(not store.is_five_star_mode())
        bot.sleep(1 + random.random())
        ctx.send(text("切换到五星卡池~" if five else "切换到普通卡池~"))
        try:
            control.set_data(gid, store.value)
        except Exception as err:  # storage backends raise their own errors
            ctx.send(text("ERROR:", err))

    @engine.on_full_match("原神十连", load_pool, limit_by_user).handle
    def _wish(ctx: Context) -> None:
        control = ctx.state.get("manager")
        if control is None:
            ctx.send(text("找不到服务!"))
            return
        store = Storage(control.get_data(ctx.group_key()))
        try:
            result = holder["gacha"].draw(10, store)
        except ValueError as err:
            ctx.send(text("ERROR:", err))
            return
        listing = "\n".join("★" * p.stars + " " + p.display for p in result.pulls)
        head = "恭喜你抽到了: \n" + result.text if result.five_star else "十连成功~"
        ctx.send(reply(ctx.event.message_id), text(head, "\n", listing))