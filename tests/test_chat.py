from huabot.core import Bot, Event, text
from huabot.plugins import chat


class Clock:
    def __init__(self):
        self.t = 0.0

    def __call__(self):
        return self.t


def test_token_bucket():
    clock = Clock()
    b = chat.TokenBucket(300, 8, clock)
    assert b.acquire(3) and b.acquire(3)
    assert not b.acquire(3)
    assert b.acquire(1)
    clock.t = 300
    assert b.acquire(8)


def test_air_conditioner():
    ac = chat.AirConditioner()
    assert ac.report(1).endswith("群温度 26℃")
    assert ac.set_temperature(1, 18).startswith("💤")
    ac.turn_on(1)
    assert ac.set_temperature(1, 18) == "❄️风速中\n群温度 18℃"
    ac.turn_off(1)
    assert ac.report(1).endswith("26℃")


def test_name_replies():
    r = chat.name_replies("X")
    assert len(r) == 4 and all("X" in s for s in r if "在~" not in s)


def make_bot():
    bot = Bot(nickname=["花花"])
    bot.sleep = lambda s: None
    chat.register(bot)
    return bot


def test_called_by_name():
    ctx = make_bot().handle(Event([text("花花")], group_id=1))
    assert ctx.sent[0][0].data["text"] in chat.name_replies("花花")


def test_poke_replies_then_stops():
    bot = make_bot()
    replies = [bot.handle(Event(group_id=5, to_me=True, kind="notice/notify/poke")).sent for _ in range(5)]
    assert "请不要戳" in replies[0][0][0].data["text"]
    assert "干嘛" in replies[2][0][0].data["text"]
    assert replies[4] == []