import logging

from huabot import logformat
from huabot.logformat import LogFormat, level_color


def rec(level, msg):
    return logging.makeLogRecord({"levelno": level, "levelname": logging.getLevelName(level), "msg": msg})


def test_warning_line():
    out = LogFormat().format(rec(logging.WARNING, "hi"))
    assert out == "\x1b[33m[WARNING] hi \n\x1b[0m"


def test_level_colors():
    assert level_color(logging.ERROR) == logformat.COLOR_ERROR
    assert level_color(logging.DEBUG) == logformat.COLOR_DEBUG
    assert level_color(5) == logformat.COLOR_TRACE
    assert level_color(logging.CRITICAL) == logformat.COLOR_FATAL


def test_message_args_are_applied():
    r = logging.makeLogRecord({"levelno": 20, "levelname": "INFO", "msg": "a %d", "args": (3,)})
    out = LogFormat().format(r)
    assert out.startswith(logformat.COLOR_INFO) and "a 3" in out and out.endswith(logformat.COLOR_RESET)