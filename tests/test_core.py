import json

import pytest

from huabot import core, kanban
from huabot.core import Bot, Config, Context, Database, Event, text


def msg(s, **kw):
    return Event([text(s)], s, **kw)


def test_segment_builders():
    assert text("a", 1, "b").data["text"] == "a1b"
    assert core.image("x.png") == core.Segment("image", {"file": "x.png"})
    assert core.reply(5).data == {"id": "5"}
    assert core.at(7).type == "at"
    assert str(core.record("r.amr")) == "[CQ:record,file=r.amr]"


def test_group_key_and_plain_text():
    bot = Bot()
    ctx = Context(bot, Event([text(" hi "), core.image("x")], user_id=9))
    assert ctx.group_key() == -9
    assert ctx.extract_plain_text() == "hi"
    ctx.event.group_id = 3
    assert ctx.group_key() == 3


def test_control_data_defaults():
    c = core.Control("x")
    assert c.get_data(1) == 0
    c.set_data(1, 42)
    assert c.get_data(1) == 42
    assert core.Control("y", disable_on_default=True).enabled is False


def test_regex_and_prefix_dispatch():
    bot = Bot()
    eng = bot.register("t")
    eng.on_regex(r"add(\d+)").handle(lambda ctx: ctx.send(ctx.state["regex_matched"][1]))
    eng.on_prefix("say").handle(lambda ctx: ctx.send(ctx.state["args"]))
    assert bot.handle(msg("add12", group_id=1)).sent[0][0].data["text"] == "12"
    assert bot.handle(msg("say  hello", group_id=1)).sent[0][0].data["text"] == "hello"


def test_block_stops_later_matchers():
    bot = Bot()
    eng = bot.register("t")
    eng.on_keyword("x").handle(lambda ctx: ctx.send("first"))
    eng.on_keyword("x").handle(lambda ctx: ctx.send("second"))
    assert len(bot.handle(msg("x", group_id=1)).sent) == 1
    eng.matchers[0].set_block(False)
    assert len(bot.handle(msg("x", group_id=1)).sent) == 2


def test_disabled_plugin_is_skipped():
    bot = Bot()
    eng = bot.register("t", disable_on_default=True)
    eng.on_message().handle(lambda ctx: ctx.send("x"))
    assert bot.handle(msg("a")).sent == []


def test_nickname_marks_to_me():
    bot = Bot(nickname=["花花"])
    eng = bot.register("t")
    eng.on_full_match("", core.only_to_me).handle(lambda ctx: ctx.send("yes"))
    assert len(bot.handle(msg("花花", group_id=2)).sent) == 1
    assert bot.handle(msg("别人", group_id=2)).sent == []


def test_help_command():
    bot = core.build_bot(Config())
    ctx = bot.handle(msg("/help"))
    assert kanban.BANNER in ctx.sent[0][0].data["text"]


def test_database(tmp_path):
    with Database(tmp_path / "a.db") as db:
        db.create("t", ["id", "name"])
        db.insert("t", {"id": 1, "name": "a"})
        db.insert("t", {"id": 2, "name": "b"})
        assert db.count("t") == 2
        assert db.find("t", "name = ?", ["b"])["id"] == 2
        assert db.pick("t")["name"] in {"a", "b"}
        db.delete("t", "id = ?", [1])
        assert db.count("t") == 1
        with pytest.raises(LookupError):
            db.find("t", "id = ?", [1])


def test_parse_args_super_users():
    args = core.parse_args(["-n", "x", "123", "abc"])
    assert args.super_users == [123, core.DEFAULT_SUPER_USER]
    assert args.nickname == "x"
    assert args.url == core.DEFAULT_URL


def test_config_round_trip(tmp_path):
    cfg = Config(["a"], "#", [1], [core.WSClient("ws://localhost:1", "token")])
    path = tmp_path / "c.json"
    core.save_config(cfg, path)
    assert core.load_config(path) == cfg


def test_main_saves_config(tmp_path, capsys):
    path = tmp_path / "c.json"
    assert core.main(["-s", str(path), "-n", "x"]) == 0
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["zero"]["nickname"][0] == "x"
    assert data["ws"][0]["url"] == core.DEFAULT_URL