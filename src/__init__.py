"""
HAL 9001 - IRC Chat Bot

A chat bot that keeps one connection to an IRC server, reacts to inbound
messages with a fixed pipeline of handlers and routes prefixed text
commands to named command functions.
"""

__version__ = "1.0.0"
__author__ = "HAL Development Team"
