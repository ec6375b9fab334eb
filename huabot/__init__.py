"""A plugin-based group chat bot with a console front end."""

__version__ = "1.4.1"