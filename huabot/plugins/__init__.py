"""Plugins; each module's register(bot) attaches its handlers to a bot."""