import pytest

from huabot.core import Bot, Event, text
from huabot.plugins.funny import Jokes, register, tell_joke


def test_tell_joke_replaces_every_name():
    assert tell_joke("%name说%name好", "小明") == "小明说小明好"
    assert tell_joke("no name", "小明") == "no name"


def test_random(tmp_path):
    with Jokes(tmp_path / "jokes.db") as jokes:
        with pytest.raises(LookupError):
            jokes.random()
        jokes.db.insert("jokes", {"id": 1, "text": "%name好"})
        assert jokes.random() == "%name好"
        assert jokes.count() == 1


@pytest.fixture
def bot(tmp_path, monkeypatch):
    with Jokes(tmp_path / "jokes.db") as jokes:
        jokes.db.insert("jokes", {"id": 1, "text": "%name好"})
    monkeypatch.setenv("HUABOT_FUNNY_DATA", str(tmp_path))
    b = Bot()
    register(b)
    return b


def test_register_named(bot):
    ctx = bot.handle(Event([text("讲个笑话小明")], "讲个笑话小明", user_id=1, group_id=2))
    assert ctx.sent[0][0].data["text"] == "小明好"


def test_register_falls_back_to_sender(bot):
    event = Event([text("夸夸")], "夸夸", user_id=3, group_id=2, nickname="阿花")
    ctx = bot.handle(event)
    assert ctx.sent[0][0].data["text"] == "阿花好"


def test_register_limits_user(bot):
    bot.handle(Event([text("夸夸")], "夸夸", user_id=5, group_id=2, nickname="x"))
    second = bot.handle(Event([text("夸夸")], "夸夸", user_id=5, group_id=2, nickname="x"))
    assert second.sent == []