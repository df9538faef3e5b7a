from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import shlex
import sys
import threading
from typing import List

from dotenv import load_dotenv

from shipdesk.client import ShipdeskClient
from shipdesk.clients.common.printer import Printer
from shipdesk.errors import ApiError, AuthError

logger = logging.getLogger("shipdesk.cli")

HELP = """commands:
  login <email> [password]   sign in (prompts for password if omitted)
  logout                     sign out (always succeeds locally)
  whoami                     show the current session
  track <tracking-id>        look up a shipment
  profile | notifications | addresses | categories | branches
  cache                      show cache freshness per tag
  quit"""


def _start_stdin_reader(queue: asyncio.Queue[str]) -> None:
    # Daemon thread so a pending readline() never blocks interpreter exit.
    loop = asyncio.get_running_loop()

    def _read():
        while True:
            line = sys.stdin.readline()
            if not line:
                loop.call_soon_threadsafe(queue.put_nowait, "__EOF__")
                return
            loop.call_soon_threadsafe(queue.put_nowait, line.rstrip("\n"))

    threading.Thread(target=_read, name="shipdesk-stdin", daemon=True).start()


async def _handle(client: ShipdeskClient, printer: Printer, argv: List[str]) -> bool:
    cmd, args = argv[0].lower(), argv[1:]

    if cmd in ("quit", "exit"):
        return False
    if cmd == "help":
        printer.info(HELP)
    elif cmd == "login":
        if not args:
            printer.error("usage: login <email> [password]")
            return True
        password = args[1] if len(args) > 1 else await asyncio.get_running_loop().run_in_executor(None, getpass.getpass)
        try:
            await client.login(args[0], password)
        except AuthError as e:
            printer.error(e.message)
            if e.email_not_verified:
                printer.info("Verify your email first: check your inbox for the code.")
            return True
        printer.session(client.use_session())
    elif cmd == "logout":
        await client.logout()
        printer.info("Logged out")
    elif cmd == "whoami":
        printer.session(client.use_session())
    elif cmd == "cache":
        reg = client.registry
        printer.cache((t, reg.is_fresh(t), len(reg.entries(t))) for t in reg.tags)
    elif cmd == "track":
        if not args:
            printer.error("usage: track <tracking-id>")
            return True
        try:
            printer.data(await client.resources.track_order(args[0]), title=f"tracking {args[0]}")
        except ApiError as e:
            printer.error(e.message)
    elif cmd in ("profile", "notifications", "addresses", "categories", "branches"):
        fetch = {
            "profile": client.resources.profile,
            "notifications": client.resources.notifications,
            "addresses": client.resources.customer_addresses,
            "categories": client.resources.category_filters,
            "branches": client.resources.branches,
        }[cmd]
        try:
            printer.data(await fetch(), title=cmd)
        except ApiError as e:
            printer.error(e.message)
    else:
        printer.error(f"unknown command: {cmd} (try 'help')")
    return True


async def main(argv: List[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(prog="shipdesk", description="Shipdesk terminal client")
    parser.add_argument("--base-url", default=None, help="Backend API base URL")
    parser.add_argument("--data-dir", default=None, help="Where the persisted session lives")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    ns = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if ns.debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    printer = Printer()
    client = ShipdeskClient(base_url=ns.base_url, storage_dir=ns.data_dir)
    if ns.debug:
        client.store.on_transition(printer.transition)

    stdin_q: asyncio.Queue[str] = asyncio.Queue()
    _start_stdin_reader(stdin_q)
    try:
        await client.startup()
        printer.session(client.use_session())
        printer.info(HELP)
        while True:
            line = await stdin_q.get()
            if line == "__EOF__":
                return
            try:
                argv_line = shlex.split(line)
            except ValueError as e:
                printer.error(str(e))
                continue
            if not argv_line:
                continue
            if not await _handle(client, printer, argv_line):
                return
    finally:
        await client.aclose()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
