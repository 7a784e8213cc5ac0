"""
Unit tests for the built-in command set
"""

import os
import pwd
import sys
from collections import Counter
from unittest.mock import Mock

import pytest

from src.core.config import DEFAULT_QUOTES
from src.core.database import DatabaseError
from src.models.message import ProtocolMessage
from src.services.bot.command_router import CommandRouter
from src.services.bot.commands import (
    door, echo, make_help, make_quote, make_store, mem, pyver, tasks, user,
    register_default_commands
)
from tests.utils import privmsg, run_handler


class TestSimpleCommands:
    """Test the stateless commands"""

    def test_echo_reflects_body(self):
        """Test echo returns the body verbatim"""
        assert echo("hi  there ", "dave") == "hi  there "

    def test_echo_empty_body(self):
        """Test echo is silent without a body"""
        assert echo("", "dave") is None

    def test_door(self):
        """Test the canned refusal ignores input"""
        assert door("please", "dave") == "I'm sorry, dave. I'm afraid I can't do that."

    def test_pyver(self):
        """Test the interpreter version report"""
        assert f"{sys.version_info.major}.{sys.version_info.minor}" in pyver("", "dave")

    @pytest.mark.asyncio
    async def test_tasks_counts_live_tasks(self):
        """Test the task count includes the running test"""
        count = int(tasks("", "dave").split()[0])

        assert count >= 1

    def test_mem(self):
        """Test resource usage is reported"""
        assert mem("", "dave").startswith("maxrss=")

    def test_user_known(self):
        """Test lookup of the current account"""
        name = pwd.getpwuid(os.getuid()).pw_name

        assert f"Username={name}" in user(name, "dave")

    def test_user_unknown(self):
        """Test lookup errors are returned as text"""
        assert user("no-such-user-9001", "dave") == "user: unknown user no-such-user-9001"


class TestHelp:
    """Test the help listing"""

    def test_help_lists_names_in_order(self):
        """Test each registered name appears once, in order"""
        router = CommandRouter("!")
        router.register("echo", echo)
        router.register("help", make_help(router))
        router.register("door", door)

        assert router.commands["help"]("", "dave") == "echo, help, door"

    def test_help_sees_later_registrations(self):
        """Test help reflects the table at call time"""
        router = CommandRouter("!")
        help_command = make_help(router)
        router.register("help", help_command)
        router.register("quote", make_quote(DEFAULT_QUOTES))

        assert help_command("", "dave") == "help, quote"


class TestQuote:
    """Test random quote selection"""

    def test_quote_is_from_list(self):
        """Test every reply is one of the fixed quotes"""
        quote = make_quote(DEFAULT_QUOTES)

        for _ in range(50):
            assert quote("", "dave") in DEFAULT_QUOTES

    def test_quote_selection_is_uniform(self):
        """Test selection frequency is close to uniform"""
        quote = make_quote(DEFAULT_QUOTES)
        trials = 8000

        counts = Counter(quote("", "dave") for _ in range(trials))

        assert set(counts) == set(DEFAULT_QUOTES)
        expected = trials / len(DEFAULT_QUOTES)
        for observed in counts.values():
            # Roughly seven standard deviations for a fair draw
            assert abs(observed - expected) < expected * 0.15

    def test_quote_uses_injected_choice(self):
        """Test the chooser can be replaced"""
        chooser = Mock(return_value="picked")
        quote = make_quote(["a", "b"], choice=chooser)

        assert quote("", "dave") == "picked"
        chooser.assert_called_once_with(("a", "b"))

    def test_quote_requires_quotes(self):
        """Test an empty quote list is rejected"""
        with pytest.raises(ValueError):
            make_quote([])


class TestStore:
    """Test the key/value command"""

    @pytest.mark.asyncio
    async def test_write_then_read(self, store):
        """Test a stored value reads back"""
        command = make_store(store)

        assert await command("foo bar", "dave") is None
        assert await command("foo", "dave") == "bar"

    @pytest.mark.asyncio
    async def test_value_keeps_spaces(self, store):
        """Test everything after the key is the value"""
        command = make_store(store)

        await command("motto I am completely operational", "dave")

        assert await command("motto", "dave") == "I am completely operational"

    @pytest.mark.asyncio
    async def test_overwrite(self, store):
        """Test a second write replaces the value"""
        command = make_store(store)

        await command("foo bar", "dave")
        await command("foo baz", "dave")

        assert await command("foo", "dave") == "baz"

    @pytest.mark.asyncio
    async def test_missing_name(self, store):
        """Test reading an unknown key"""
        assert await make_store(store)("missing", "dave") == "no such name"

    @pytest.mark.asyncio
    async def test_bad_arguments(self, store):
        """Test an empty body"""
        assert await make_store(store)("", "dave") == "bad arguments"
        assert await make_store(store)("   ", "dave") == "bad arguments"

    @pytest.mark.asyncio
    async def test_database_error_is_reported(self):
        """Test storage failures become reply text"""
        broken = Mock()
        broken.get.side_effect = DatabaseError("disk I/O error")

        assert await make_store(broken)("foo", "dave") == "error: disk I/O error"


class TestDefaultCommands:
    """Test the full command set on a router"""

    def test_registration_order(self, store):
        """Test the default commands and their order"""
        router = CommandRouter("!")
        register_default_commands(router, store, DEFAULT_QUOTES)

        assert router.registered_names() == [
            "echo", "help", "quote", "door", "user", "pyver", "tasks", "mem", "store"
        ]

    @pytest.mark.asyncio
    async def test_store_through_router(self, store, sink):
        """Test !store writes silently and reads back one reply"""
        router = CommandRouter("!")
        register_default_commands(router, store, DEFAULT_QUOTES)

        assert await run_handler(router, privmsg("!store foo bar"), sink) == []
        assert await run_handler(router, privmsg("!store foo"), sink) == [
            ProtocolMessage.privmsg("#bots", "bar")
        ]
        replies = await run_handler(router, privmsg("!store missing"), sink)
        assert "no such name" in replies[0].params[1]

    @pytest.mark.asyncio
    async def test_help_through_router(self, store, sink):
        """Test !help enumerates every command once"""
        router = CommandRouter("!")
        register_default_commands(router, store, DEFAULT_QUOTES)

        [reply] = await run_handler(router, privmsg("!help"), sink)
        names = reply.params[1].split(", ")

        assert names == router.registered_names()
        assert len(names) == len(set(names))
