import pytest

from huabot.core import Bot, Event, text
from huabot.plugins.curse import MAX_LEVEL, MIN_LEVEL, Curses, register


def _fill(curses):
    curses.db.insert("curse", {"id": 1, "text": "soft", "level": MIN_LEVEL})
    curses.db.insert("curse", {"id": 2, "text": "hard", "level": MAX_LEVEL})


def test_random_by_level(tmp_path):
    with Curses(tmp_path / "curse.db") as curses:
        _fill(curses)
        assert curses.random_by_level(MIN_LEVEL) == "soft"
        assert curses.random_by_level(MAX_LEVEL) == "hard"
        assert curses.count() == 2


def test_random_by_level_missing(tmp_path):
    with Curses(tmp_path / "curse.db") as curses:
        with pytest.raises(LookupError):
            curses.random_by_level(MIN_LEVEL)


@pytest.fixture
def bot(tmp_path, monkeypatch):
    with Curses(tmp_path / "curse.db") as curses:
        _fill(curses)
    monkeypatch.setenv("HUABOT_CURSE_DATA", str(tmp_path))
    b = Bot()
    b.sleep = lambda seconds: None
    register(b)
    return b


def test_disabled_by_default(bot):
    ctx = bot.handle(Event([text("骂我")], "骂我", user_id=1, group_id=2))
    assert ctx.sent == []


def test_curse_on_request(bot):
    bot.lookup("curse").enabled = True
    ctx = bot.handle(Event([text("大力骂我")], "大力骂我", user_id=1, group_id=2, message_id=9))
    assert ctx.sent[0][0].data["id"] == "9"
    assert ctx.sent[0][1].data["text"] == "hard"


def test_curse_back_when_insulted(bot):
    bot.lookup("curse").enabled = True
    ctx = bot.handle(Event([text("你去死")], "你去死", user_id=3))
    assert ctx.sent[0][1].data["text"] == "hard"


def test_user_limit(bot):
    bot.lookup("curse").enabled = True
    bot.handle(Event([text("骂我")], "骂我", user_id=4, group_id=2))
    second = bot.handle(Event([text("骂我")], "骂我", user_id=4, group_id=2))
    assert second.sent == []