"""Bot core: message segments, events, matchers, plugin controls, storage and start-up."""

from __future__ import annotations

import argparse
import json
import logging
import random
import re
import sqlite3
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence, TextIO

log = logging.getLogger("huabot")

DEFAULT_SUPER_USER = 2321764840
DEFAULT_URL = "ws://127.0.0.1:6700"
DEFAULT_NICKNAME = "花花"
EXTRA_NICKNAMES = ("花", "种花家")

Rule = Callable[["Context"], bool]
Handler = Callable[["Context"], Any]


@dataclass
class Segment:
    """One element of a chat message."""

    type: str
    data: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        if self.type == "text":
            return self.data.get("text", "")
        params = ",".join(f"{k}={v}" for k, v in self.data.items())
        return f"[CQ:{self.type},{params}]" if params else f"[CQ:{self.type}]"


def text(*args: Any) -> Segment:
    """A text segment built from the given values."""
    return Segment("text", {"text": "".join(str(a) for a in args)})


def image(file: str) -> Segment:
    return Segment("image", {"file": file})


def record(file: str) -> Segment:
    return Segment("record", {"file": file})


def reply(message_id: Any) -> Segment:
    return Segment("reply", {"id": str(message_id)})


def at(user_id: int) -> Segment:
    return Segment("at", {"qq": str(user_id)})


@dataclass
class Event:
    """An incoming message or notice."""

    message: list[Segment] = field(default_factory=list)
    raw_message: str = ""
    user_id: int = 0
    group_id: int = 0
    message_id: int = 0
    nickname: str = ""
    role: str = "member"
    to_me: bool = False
    kind: str = "message"


class Context:
    """What a handler sees: the event, the matcher state and what it sent."""

    def __init__(self, bot: "Bot", event: Event) -> None:
        self.bot = bot
        self.event = event
        self.state: dict[str, Any] = {}
        self.sent: list[list[Segment]] = []

    def send(self, *args: Segment | str) -> list[Segment]:
        chain = [a if isinstance(a, Segment) else text(a) for a in args]
        self.sent.append(chain)
        return chain

    def extract_plain_text(self) -> str:
        return "".join(s.data.get("text", "") for s in self.event.message if s.type == "text").strip()

    def group_key(self) -> int:
        """The group id, or the negated user id in private chats."""
        return self.event.group_id if self.event.group_id != 0 else -self.event.user_id


@dataclass
class Control:
    """Per-plugin switch and integer storage keyed by group."""

    name: str
    help: str = ""
    disable_on_default: bool = False
    enabled: bool = True
    data: dict[int, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.enabled = not self.disable_on_default

    def get_data(self, gid: int) -> int:
        return self.data.get(gid, 0)

    def set_data(self, gid: int, value: int) -> None:
        self.data[gid] = int(value)


@dataclass
class Matcher:
    match: Callable[[Context], bool]
    rules: tuple[Rule, ...]
    block: bool = True
    handler: Handler | None = None

    def set_block(self, block: bool) -> "Matcher":
        self.block = block
        return self

    def handle(self, func: Handler) -> Handler:
        self.handler = func
        return func


def _words(value: str | Iterable[str]) -> list[str]:
    return [value] if isinstance(value, str) else list(value)


class Engine:
    """Registers matchers for one plugin."""

    def __init__(self, control: Control) -> None:
        self.control = control
        self.matchers: list[Matcher] = []

    def _add(self, match: Callable[[Context], bool], rules: tuple[Rule, ...]) -> Matcher:
        matcher = Matcher(match, rules)
        self.matchers.append(matcher)
        return matcher

    @staticmethod
    def _is_message(ctx: Context) -> bool:
        return ctx.event.kind == "message"

    def on(self, kind: str, *rules: Rule) -> Matcher:
        return self._add(lambda ctx: ctx.event.kind == kind, rules)

    def on_message(self, *rules: Rule) -> Matcher:
        return self._add(self._is_message, rules)

    def on_full_match(self, words: str | Iterable[str], *rules: Rule) -> Matcher:
        options = _words(words)

        def match(ctx: Context) -> bool:
            plain = ctx.extract_plain_text()
            if self._is_message(ctx) and plain in options:
                ctx.state["matched"] = plain
                return True
            return False

        return self._add(match, rules)

    def on_regex(self, pattern: str, *rules: Rule) -> Matcher:
        compiled = re.compile(pattern)

        def match(ctx: Context) -> bool:
            if not self._is_message(ctx):
                return False
            found = compiled.search(ctx.extract_plain_text())
            if found is None:
                return False
            ctx.state["regex_matched"] = [found.group(0)] + [g or "" for g in found.groups()]
            return True

        return self._add(match, rules)

    def on_prefix(self, prefixes: str | Iterable[str], *rules: Rule) -> Matcher:
        options = _words(prefixes)

        def match(ctx: Context) -> bool:
            plain = ctx.extract_plain_text()
            for prefix in options:
                if self._is_message(ctx) and plain.startswith(prefix):
                    ctx.state["prefix"] = prefix
                    ctx.state["args"] = plain[len(prefix):].strip()
                    return True
            return False

        return self._add(match, rules)

    def on_suffix(self, suffix: str | Iterable[str], *rules: Rule) -> Matcher:
        options = _words(suffix)

        def match(ctx: Context) -> bool:
            plain = ctx.extract_plain_text()
            for end in options:
                if self._is_message(ctx) and plain.endswith(end):
                    ctx.state["suffix"] = end
                    ctx.state["args"] = plain[: len(plain) - len(end)].strip()
                    return True
            return False

        return self._add(match, rules)

    def on_keyword(self, keywords: str | Iterable[str], *rules: Rule) -> Matcher:
        options = _words(keywords)

        def match(ctx: Context) -> bool:
            plain = ctx.extract_plain_text()
            for word in options:
                if self._is_message(ctx) and word in plain:
                    ctx.state["keyword"] = word
                    return True
            return False

        return self._add(match, rules)


class Bot:
    """Holds the plugins and dispatches events to them in registration order."""

    def __init__(
        self,
        nickname: Sequence[str] = (DEFAULT_NICKNAME,),
        command_prefix: str = "/",
        super_users: Sequence[int] = (),
        self_id: int = 0,
    ) -> None:
        self.nickname = list(nickname)
        self.command_prefix = command_prefix
        self.super_users = list(super_users)
        self.self_id = self_id
        self.engines: list[Engine] = []
        self.sleep: Callable[[float], None] = time.sleep

    def register(self, name: str, help: str = "", disable_on_default: bool = False) -> Engine:
        engine = Engine(Control(name, help, disable_on_default))
        self.engines.append(engine)
        return engine

    def lookup(self, name: str) -> Control | None:
        return next((e.control for e in self.engines if e.control.name == name), None)

    def _mark_to_me(self, event: Event) -> None:
        if event.group_id == 0 and event.kind == "message":
            event.to_me = True
        if self.self_id and any(
            s.type == "at" and s.data.get("qq") == str(self.self_id) for s in event.message
        ):
            event.to_me = True
        first = next((s for s in event.message if s.type == "text"), None)
        if first is None:
            return
        body = first.data.get("text", "").lstrip()
        for nick in sorted(self.nickname, key=len, reverse=True):
            if nick and body.startswith(nick):
                first.data["text"] = body[len(nick):]
                event.to_me = True
                return

    def handle(self, event: Event) -> Context:
        self._mark_to_me(event)
        ctx = Context(self, event)
        for engine in self.engines:
            if not engine.control.enabled:
                continue
            for matcher in engine.matchers:
                ctx.state = {"manager": engine.control}
                if not matcher.match(ctx) or not all(rule(ctx) for rule in matcher.rules):
                    continue
                if matcher.handler is not None:
                    matcher.handler(ctx)
                if matcher.block:
                    return ctx
        return ctx


def only_to_me(ctx: Context) -> bool:
    return ctx.event.to_me


def only_group(ctx: Context) -> bool:
    return ctx.event.group_id != 0


def super_user_permission(ctx: Context) -> bool:
    return ctx.event.user_id in ctx.bot.super_users


def admin_permission(ctx: Context) -> bool:
    return super_user_permission(ctx) or ctx.event.role in ("admin", "owner")


class Database:
    """A small sqlite store addressed by table name."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

    @staticmethod
    def _quote(name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def create(self, table: str, columns: Sequence[str]) -> None:
        if not columns:
            raise ValueError("a table needs at least one column")
        cols = [f"{self._quote(columns[0])} PRIMARY KEY"] + [self._quote(c) for c in columns[1:]]
        with self._conn:
            self._conn.execute(f"CREATE TABLE IF NOT EXISTS {self._quote(table)} ({', '.join(cols)})")

    def insert(self, table: str, row: dict[str, Any]) -> None:
        names = ", ".join(self._quote(k) for k in row)
        marks = ", ".join("?" for _ in row)
        with self._conn:
            self._conn.execute(
                f"INSERT OR REPLACE INTO {self._quote(table)} ({names}) VALUES ({marks})",
                tuple(row.values()),
            )

    def find(self, table: str, where: str, params: Sequence[Any] = ()) -> dict[str, Any]:
        found = self._conn.execute(
            f"SELECT * FROM {self._quote(table)} WHERE {where} LIMIT 1", tuple(params)
        ).fetchone()
        if found is None:
            raise LookupError(f"no matching row in {table}")
        return dict(found)

    def pick(self, table: str) -> dict[str, Any]:
        found = self._conn.execute(
            f"SELECT * FROM {self._quote(table)} ORDER BY RANDOM() LIMIT 1"
        ).fetchone()
        if found is None:
            raise LookupError(f"table {table} is empty")
        return dict(found)

    def count(self, table: str) -> int:
        return self._conn.execute(f"SELECT COUNT(*) FROM {self._quote(table)}").fetchone()[0]

    def delete(self, table: str, where: str, params: Sequence[Any] = ()) -> None:
        with self._conn:
            self._conn.execute(f"DELETE FROM {self._quote(table)} WHERE {where}", tuple(params))

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


@dataclass
class WSClient:
    url: str = DEFAULT_URL
    access_token: str = ""


@dataclass
class Config:
    """Bot settings as stored in a config file."""

    nickname: list[str] = field(default_factory=lambda: [DEFAULT_NICKNAME, *EXTRA_NICKNAMES])
    command_prefix: str = "/"
    super_users: list[int] = field(default_factory=list)
    ws: list[WSClient] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "zero": {
                "nickname": self.nickname,
                "command_prefix": self.command_prefix,
                "super_users": self.super_users,
            },
            "ws": [{"url": w.url, "access_token": w.access_token} for w in self.ws],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        zero = data.get("zero", {})
        return cls(
            nickname=list(zero.get("nickname", [])),
            command_prefix=zero.get("command_prefix", "/"),
            super_users=[int(u) for u in zero.get("super_users", [])],
            ws=[WSClient(w.get("url", DEFAULT_URL), w.get("access_token", "")) for w in data.get("ws", [])],
        )


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="huabot", add_help=False)
    p.add_argument("-d", dest="debug", action="store_true", help="Enable debug level log and higher.")
    p.add_argument("-w", dest="warning", action="store_true", help="Enable warning level log and higher.")
    p.add_argument("-h", dest="help", action="store_true", help="Display this help.")
    p.add_argument("-t", dest="token", default="", help="Set AccessToken of WSClient.")
    p.add_argument("-u", dest="url", default=DEFAULT_URL, help="Set Url of WSClient.")
    p.add_argument("-n", dest="nickname", default=DEFAULT_NICKNAME, help="Set default nickname.")
    p.add_argument("-p", dest="prefix", default="/", help="Set command prefix.")
    p.add_argument("-c", dest="config", default="", help="Run from config file.")
    p.add_argument("-s", dest="save", default="", help="Save default config to file and exit.")
    p.add_argument("users", nargs="*", help="Super user ids.")
    return p


def parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    """Parse the command line; numeric positionals become super users."""
    args = _parser().parse_args(argv)
    users = []
    for item in args.users:
        try:
            users.append(int(item))
        except ValueError:
            continue
    users.append(DEFAULT_SUPER_USER)
    args.super_users = users
    return args


def load_config(path: str | Path) -> Config:
    with open(path, encoding="utf-8") as f:
        return Config.from_dict(json.load(f))


def save_config(config: Config, path: str | Path) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, ensure_ascii=False)
        f.write("\n")


def build_bot(config: Config) -> Bot:
    """A bot with the built-in help commands registered."""
    from huabot import kanban

    bot = Bot(config.nickname or [DEFAULT_NICKNAME], config.command_prefix, config.super_users)
    core = bot.register("core")

    core.on_full_match(["/help", ".help", "菜单"], only_to_me).handle(
        lambda ctx: ctx.send(text(kanban.BANNER, '\n可发送"/服务列表"查看 bot 功能'))
    )
    core.on_full_match("查看zbp公告", only_to_me, admin_permission).handle(
        lambda ctx: ctx.send(text(kanban.kanban()))
    )
    return bot


def _console(bot: Bot, stream: TextIO, out: TextIO) -> None:
    user = bot.super_users[0] if bot.super_users else 0
    for n, line in enumerate(stream, 1):
        line = line.rstrip("\n")
        if not line:
            continue
        ctx = bot.handle(Event([text(line)], line, user_id=user, message_id=n))
        for chain in ctx.sent:
            print("".join(str(s) for s in chain), file=out)


def main(argv: Sequence[str] | None = None) -> int:
    from huabot import kanban
    from huabot.plugins import aiwife, baidu, chat, choose

    args = parse_args(argv)
    if args.help:
        kanban.print_banner()
        print("Usage:")
        print(_parser().format_help())
        return 0
    kanban.print_banner()
    level = logging.INFO
    if args.debug and not args.warning:
        level = logging.DEBUG
    if args.warning:
        level = logging.WARNING
    logging.basicConfig(level=level)

    if args.config:
        config = load_config(args.config)
        log.info("[main] 从 %s 读取配置文件", args.config)
    else:
        config = Config(
            nickname=[args.nickname, *EXTRA_NICKNAMES],
            command_prefix=args.prefix,
            super_users=args.super_users,
            ws=[WSClient(args.url, args.token)],
        )
        if args.save:
            save_config(config, args.save)
            log.info("[main] 配置文件已保存到 %s", args.save)
            return 0

    random.seed()
    bot = build_bot(config)
    for plugin in (chat, aiwife, baidu, choose):
        plugin.register(bot)
    _console(bot, sys.stdin, sys.stdout)
    return 0