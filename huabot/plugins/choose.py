"""Pick one of several options."""

from __future__ import annotations

import random

from huabot.core import Bot, Context, text


def choose(args: str, nickname: str) -> str:
    options = args.split("还是")
    listed = "\n".join(f"{n}, {o}" for n, o in enumerate(options, 1))
    result = random.choice(options)
    return f"> {nickname}\n你的选项有:\n{listed}\n你最终会选: {result}"


def register(bot: Bot) -> None:
    engine = bot.register("choose", "choose\n- 选择可口可乐还是百事可乐\n- 选择肯德基还是麦当劳还是必胜客")

    @engine.on_prefix("选择").handle
    def _handle(ctx: Context) -> None:
        ctx.send(text(choose(ctx.state["args"], ctx.event.nickname)))