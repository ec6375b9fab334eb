"""Random generated waifu picture."""

from __future__ import annotations

import random

from huabot.core import Bot, Context, at, image

BED = "https://www.thiswaifudoesnotexist.net/example-{}.jpg"


def waifu_url(number: int) -> str:
    return BED.format(number)


def register(bot: Bot) -> None:
    engine = bot.register("aiwife", "AIWife\n- waifu | 随机waifu")

    @engine.on_full_match(["waifu", "随机waifu"]).handle
    def _handle(ctx: Context) -> None:
        ctx.send(at(ctx.event.user_id), image(waifu_url(random.randint(1, 100000))))