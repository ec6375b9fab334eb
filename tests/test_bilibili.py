import pytest
import responses

from huabot.core import Bot, Event, text
from huabot.plugins import bilibili, bilibili_api as api
from huabot.plugins.bilibili import Vup, VupDB, int_to_rgb, merge_vups


@pytest.fixture
def db(tmp_path):
    with VupDB(tmp_path / "b.db") as vdb:
        yield vdb


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def bot(tmp_path, monkeypatch):
    monkeypatch.setenv(bilibili.DATA_ENV, str(tmp_path / "data"))
    b = Bot(super_users=[1])
    bilibili.register(b)
    return b


def _say(bot, line, user=1):
    ctx = bot.handle(Event([text(line)], line, user_id=user, message_id=5))
    return ["".join(str(s) for s in chain) for chain in ctx.sent]


def test_int_to_rgb_splits_channels():
    assert int_to_rgb(0x112233) == (0x11, 0x22, 0x33)
    r, g, b = int_to_rgb(0xABCDEF)
    assert (r << 16) | (g << 8) | b == 0xABCDEF


def test_merge_vups_puts_medals_first_without_duplicates():
    vups = [Vup(1, "a"), Vup(2, "b"), Vup(3, "c")]
    medals = [api.Medal("c", 3, level=5), api.Medal("x", 9, level=1)]
    merged = merge_vups(vups, medals)
    assert [v.mid for v in merged] == [3, 9, 1, 2]


def test_insert_keeps_first_and_filters(db):
    db.insert_vup(1, "a", 10)
    db.insert_vup(1, "changed", 99)
    db.insert_vup(2, "b", 20)
    assert db.filter_vups([1, 3]) == [Vup(1, "a", 10)]
    assert db.filter_vups([]) == []


def test_cookie_round_trip(db):
    assert db.get_cookie() == ""
    db.set_cookie("placeholder")
    db.set_cookie("token")
    assert db.get_cookie() == "token"


def test_update_vups(db, mocked):
    for n, url in enumerate(bilibili.VTB_URLS):
        mocked.get(url, json=[{"mid": n + 1, "uname": f"v{n}", "roomid": n}])
    db.update_vups()
    assert [v.mid for v in db.filter_vups([1, 2, 3])] == [1, 2, 3]


def test_set_cookie_command(bot):
    out = _say(bot, "设置b站cookie placeholder")
    assert out == ["成功设置b站cookie为placeholder"]


def test_set_cookie_requires_super_user(bot):
    assert _say(bot, "设置b站cookie placeholder", user=2) == []


def test_vup_info(bot, mocked):
    mocked.get(api.SEARCH_URL, json={"data": {"numResults": 1, "result": [{"mid": 42, "uname": "alice"}]}})
    mocked.get(api.FANS_URL + "42", json={"mid": 42, "uname": "alice", "follower": 1000})
    out = _say(bot, ">vup info alice")
    assert len(out) == 1
    assert "名字: alice\n" in out[0]
    assert "当前粉丝数: 1000\n" in out[0]


def test_composition_report(bot, mocked, tmp_path):
    with VupDB(tmp_path / "data" / "bilibili.db") as vdb:
        vdb.insert_vup(1, "streamer", 0)
    mocked.get(api.CARD_URL, json={"card": {"name": "alice", "mid": "42", "fans": 3,
                                            "regtime": 0, "attentions": [1, 2]}})
    mocked.get(api.MEDAL_WALL_URL, json={"code": 0, "data": {"list": [
        {"target_name": "idol", "medal_info": {"target_id": 7, "medal_name": "M", "level": 4}}]}})
    out = _say(bot, "查成分42")
    assert len(out) == 1
    lines = out[0].split("\n")
    assert lines[0] == "alice 42"
    assert "（1/2）" in out[0]
    assert lines[-2:] == ["idol 7 [M 4]", "streamer 1"]