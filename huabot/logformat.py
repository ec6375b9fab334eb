"""Coloured one-line log formatting."""

from __future__ import annotations

import logging

COLOR_PANIC = "\x1b[1;31m"
COLOR_FATAL = "\x1b[1;31m"
COLOR_ERROR = "\x1b[31m"
COLOR_WARN = "\x1b[33m"
COLOR_INFO = "\x1b[37m"
COLOR_DEBUG = "\x1b[32m"
COLOR_TRACE = "\x1b[36m"
COLOR_RESET = "\x1b[0m"


def level_color(levelno: int) -> str:
    """The terminal colour code for a logging level."""
    if levelno >= logging.CRITICAL:
        return COLOR_FATAL
    if levelno >= logging.ERROR:
        return COLOR_ERROR
    if levelno >= logging.WARNING:
        return COLOR_WARN
    if levelno >= logging.INFO:
        return COLOR_INFO
    if levelno >= logging.DEBUG:
        return COLOR_DEBUG
    if levelno > logging.NOTSET:
        return COLOR_TRACE
    return COLOR_INFO


class LogFormat(logging.Formatter):
    """Formats records as a coloured "[LEVEL] message" line."""

    def format(self, record: logging.LogRecord) -> str:
        return (
            f"{level_color(record.levelno)}[{record.levelname.upper()}] "
            f"{record.getMessage()} \n{COLOR_RESET}"
        )