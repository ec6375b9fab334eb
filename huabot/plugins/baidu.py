"""Link to a search for the given text."""

from __future__ import annotations

from urllib.parse import quote_plus

from huabot.core import Bot, Context, text

BASE = "https://buhuibaidu.me/?s="


def search_url(text: str) -> str:
    return BASE + quote_plus(text)


def register(bot: Bot) -> None:
    engine = bot.register("baidu", "baidu\n- 百度下[xxx]")

    @engine.on_prefix("百度下").handle
    def _handle(ctx: Context) -> None:
        query = ctx.state["args"]
        if query:
            ctx.send(text(search_url(query)))