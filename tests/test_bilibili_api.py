import json

import pytest
import responses

from huabot.plugins import bilibili_api as api


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


def test_search_parses_results(mocked):
    mocked.get(api.SEARCH_URL, json={"data": {"numResults": 1, "result": [
        {"mid": 42, "uname": "alice", "gender": 2, "usign": "hi", "level": 6}]}})
    found = api.search("alice")
    assert found == [api.SearchResult(42, "alice", 2, "hi", 6)]
    assert "keyword=alice" in mocked.calls[0].request.url


def test_search_nobody_raises(mocked):
    mocked.get(api.SEARCH_URL, json={"data": {"numResults": 0}})
    with pytest.raises(LookupError, match="查无此人"):
        api.search("nobody")


def test_fans_api(mocked):
    mocked.get(api.FANS_URL + "42", json={
        "mid": 42, "uname": "alice", "video": 3, "roomid": 7, "rise": -1,
        "follower": 1000, "guardNum": 5, "areaRank": 9})
    fo = api.fans_api("42")
    assert fo == api.Follower(42, "alice", 3, 7, -1, 1000, 5, 9)


def test_followings_returns_names_and_sends_cookie(mocked):
    mocked.get(api.FOLLOWINGS_URL, json={"code": 0, "data": {"list": [{"uname": "a"}, {"uname": "b"}]}})
    names = api.followings("42", "placeholder")
    assert json.loads(names) == ["a", "b"]
    assert mocked.calls[0].request.headers["cookie"] == "placeholder"


def test_followings_needs_cookie(mocked):
    mocked.get(api.FOLLOWINGS_URL, json={"code": -101, "message": "no login"})
    with pytest.raises(api.NeedCookieError):
        api.followings("42", "")


def test_followings_other_error(mocked):
    mocked.get(api.FOLLOWINGS_URL, json={"code": -400, "message": "bad request"})
    with pytest.raises(api.BilibiliError, match="bad request"):
        api.followings("42", "placeholder")


def test_card(mocked):
    mocked.get(api.CARD_URL, json={"card": {
        "name": "alice", "mid": "42", "face": "f.jpg", "fans": 10, "regtime": 100,
        "attentions": [1, 2, 3]}})
    info = api.card("42")
    assert info == api.UserInfo("alice", "42", "f.jpg", 10, 100, [1, 2, 3])


def test_medal_wall(mocked):
    mocked.get(api.MEDAL_WALL_URL, json={"code": 0, "data": {"list": [
        {"target_name": "bob", "medal_info": {"target_id": 7, "medal_name": "M", "level": 12,
                                              "medal_color_start": 1, "medal_color_end": 2,
                                              "medal_color_border": 3}}]}})
    medals = api.medal_wall("42", "placeholder")
    assert medals == [api.Medal("bob", 7, "M", 12, 1, 2, 3)]


def test_medal_wall_needs_cookie(mocked):
    mocked.get(api.MEDAL_WALL_URL, json={"code": -101})
    with pytest.raises(api.NeedCookieError):
        api.medal_wall("42", "")


def test_sort_medals_descending_and_stable():
    medals = [api.Medal("a", 1, level=3), api.Medal("b", 2, level=9),
              api.Medal("c", 3, level=3), api.Medal("d", 4, level=5)]
    ordered = api.sort_medals(medals)
    assert [m.uname for m in ordered] == ["b", "d", "a", "c"]
    levels = [m.level for m in ordered]
    assert levels == sorted(levels, reverse=True)