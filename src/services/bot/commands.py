"""
Built-in bot commands

Every command is a function of (body, source) returning the reply text,
or None for no reply. The store command is a coroutine because its
storage calls run in a worker thread.
"""

import asyncio
import platform
import pwd
import random
import resource
from typing import Callable, Optional, Sequence

from ...core.database import DatabaseError, KeyValueStore
from ...core.logging import get_logger
from .command_router import CommandFunc, CommandRouter


logger = get_logger('commands')


def echo(body: str, source: str) -> Optional[str]:
    """Reflect the body verbatim"""
    return body or None


def door(body: str, source: str) -> str:
    return f"I'm sorry, {source}. I'm afraid I can't do that."


def pyver(body: str, source: str) -> str:
    """Report the interpreter version"""
    return f"{platform.python_implementation()} {platform.python_version()}"


def tasks(body: str, source: str) -> str:
    """Report how many asyncio tasks are alive"""
    return f"{len(asyncio.all_tasks())} tasks"


def mem(body: str, source: str) -> str:
    """Report process resource usage"""
    usage = resource.getrusage(resource.RUSAGE_SELF)
    return (
        f"maxrss={usage.ru_maxrss} utime={usage.ru_utime:.2f}s "
        f"stime={usage.ru_stime:.2f}s minflt={usage.ru_minflt} majflt={usage.ru_majflt}"
    )


def user(body: str, source: str) -> str:
    """Look up a local account by name"""
    try:
        entry = pwd.getpwnam(body)
    except KeyError:
        return f"user: unknown user {body}"
    return (
        f"Uid={entry.pw_uid} Gid={entry.pw_gid} Username={entry.pw_name} "
        f"Name={entry.pw_gecos} HomeDir={entry.pw_dir}"
    )


def make_help(router: CommandRouter) -> CommandFunc:
    """List every registered command, in registration order"""
    def help_command(body: str, source: str) -> str:
        return ", ".join(router.registered_names())
    return help_command


def make_quote(quotes: Sequence[str], choice: Callable = random.choice) -> CommandFunc:
    """Pick one quote uniformly at random"""
    if not quotes:
        raise ValueError("At least one quote is required")
    quotes = tuple(quotes)

    def quote(body: str, source: str) -> str:
        return choice(quotes)
    return quote


def make_store(store: KeyValueStore) -> CommandFunc:
    """
    Read or write a named value.

    "name value..." stores value under name, "name" reads it back.
    """
    async def store_command(body: str, source: str) -> Optional[str]:
        parts = body.split(None, 1)
        if not parts:
            return "bad arguments"

        name = parts[0]
        try:
            if len(parts) == 2:
                await asyncio.to_thread(store.set, name, parts[1])
                return None

            value = await asyncio.to_thread(store.get, name)
        except DatabaseError as e:
            logger.error(f"Store lookup for {name!r} failed: {e}")
            return f"error: {e}"

        if value is None:
            return "no such name"
        return value
    return store_command


def register_default_commands(router: CommandRouter, store: KeyValueStore,
                              quotes: Sequence[str]) -> None:
    """Register the full built-in command set on router"""
    router.register("echo", echo)
    router.register("help", make_help(router))
    router.register("quote", make_quote(quotes))
    router.register("door", door)
    router.register("user", user)
    router.register("pyver", pyver)
    router.register("tasks", tasks)
    router.register("mem", mem)
    router.register("store", make_store(store))
