import pytest

from huabot.core import Bot, Event, text
from huabot.plugins.chouxianghua import Dictionary, register, translate


def _fill(dictionary):
    dictionary.db.insert("pinyin", {"word": "牛", "pronunciation": "niu"})
    dictionary.db.insert("pinyin", {"word": "逼", "pronunciation": "bi"})
    dictionary.db.insert("pinyin", {"word": "猫", "pronunciation": "mao"})
    dictionary.db.insert("emoji", {"pronunciation": "niubi", "emoji": "🐮🍺"})
    dictionary.db.insert("emoji", {"pronunciation": "mao", "emoji": "🐱"})


@pytest.fixture
def dictionary(tmp_path):
    d = Dictionary(tmp_path / "cxh.db")
    _fill(d)
    yield d
    d.close()


def test_lookups(dictionary):
    assert dictionary.pinyin("猫") == "mao"
    assert dictionary.pinyin("狗") == ""
    assert dictionary.emoji("mao") == "🐱"
    assert dictionary.emoji("gou") == ""


def test_translate_pairs_and_singles(dictionary):
    assert translate("牛逼", dictionary) == "🐮🍺"
    assert translate("猫", dictionary) == "🐱"
    assert translate("牛逼猫", dictionary) == "🐮🍺🐱"


def test_translate_keeps_unknown(dictionary):
    assert translate("狗a", dictionary) == "狗a"
    assert translate("", dictionary) == ""


def test_register(tmp_path, monkeypatch):
    with Dictionary(tmp_path / "cxh.db") as d:
        _fill(d)
    monkeypatch.setenv("HUABOT_CHOUXIANGHUA_DATA", str(tmp_path))
    bot = Bot()
    register(bot)
    ctx = bot.handle(Event([text("抽象翻译牛逼猫")], "抽象翻译牛逼猫", user_id=1, group_id=2))
    assert ctx.sent[0][0].data["text"] == "🐮🍺🐱"