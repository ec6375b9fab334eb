"""Version banner and notice board."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import TextIO

INFO = (
    "* OneBot + ZeroBot",
    "* Version 1.4.1-beta6 - 2022-06-10 15:48:12 +0800 CST",
)
BANNER = "\n".join(INFO)
NOTICE_ENV = "HUABOT_KANBAN"


def kanban() -> str:
    """The current notice, read from the file named by HUABOT_KANBAN."""
    path = os.environ.get(NOTICE_ENV, "")
    if not path:
        return "暂无公告"
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except OSError as err:
        return str(err)


def print_banner(file: TextIO | None = None) -> None:
    out = file if file is not None else sys.stdout
    out.write(
        "\n======================[ZeroBot-Plugin]======================"
        f"\n{BANNER}\n"
        "----------------------[ZeroBot-公告栏]----------------------"
        f"\n{kanban()}\n"
        "============================================================\n\n"
    )