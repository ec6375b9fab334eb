from huabot.core import Bot, Event, text
from huabot.plugins import choose


def test_choose_lists_options():
    out = choose.choose("a还是b还是c", "nick")
    lines = out.split("\n")
    assert lines[0] == "> nick"
    assert lines[2:5] == ["1, a", "2, b", "3, c"]
    assert lines[5].removeprefix("你最终会选: ") in {"a", "b", "c"}


def test_registered_handler():
    bot = Bot()
    choose.register(bot)
    ctx = bot.handle(Event([text("选择x还是y")], nickname="n", group_id=1))
    assert ctx.sent[0][0].data["text"].startswith("> n\n")