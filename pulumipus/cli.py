#!/usr/bin/env python3
"""
Pulumipus CLI: Pulumi Copilot in your terminal.

    COMMAND         ALIASES         WHAT IT DOES
    -------         -------         ----------------------------------
    chat            ask, repl       Chat with Pulumi Copilot
    whoami          user            Show the signed-in user and organizations
    tap             log, tail       Watch the Copilot wire log
    serve           start, up       Run the HTTP host bridge
    banner                          Print the banner

The terminal is the chat host here: it keeps the turn history in memory,
asks for the organization when there is a choice, and cancels the running
turn on Ctrl+C.
"""

import argparse
import asyncio
import contextlib
import getpass
import json
import os
import signal
import sys
from pathlib import Path
from typing import Sequence

from pulumipus import __version__
from pulumipus.api.auth import AuthenticationToken, SessionTokenProvider
from pulumipus.api.models import OrganizationSummary

BANNER = r"""
    ╔══════════════════════════════════════════════════╗
    ║                                                  ║
    ║   ┌─┐┬ ┬┬  ┬ ┬┌┬┐┬┌─┐┬ ┬┌─┐                      ║
    ║   ├─┘│ ││  │ │││││├─┘│ │└─┐                      ║
    ║   ┴  └─┘┴─┘└─┘┴ ┴┴┴  └─┘└─┘                      ║
    ║                                                  ║
    ║   Pulumi Copilot in your terminal.   v""" + __version__ + r"""     ║
    ║                                                  ║
    ╚══════════════════════════════════════════════════╝
"""

CREDENTIALS_PATH = Path.home() / ".pulumi" / "credentials.json"

C_RESET = "\033[0m"
C_DIM = "\033[2m"
C_BOLD = "\033[1m"
C_BUTTON = "\033[92m"
C_ERROR = "\033[91m"


# ---------------------------------------------------------------------------
# Terminal host
# ---------------------------------------------------------------------------

def stored_token(api_url: str, credentials_path: Path = CREDENTIALS_PATH) -> str | None:
    """PULUMI_ACCESS_TOKEN, else the token the Pulumi CLI saved for `api_url`."""
    env_token = os.environ.get("PULUMI_ACCESS_TOKEN")
    if env_token:
        return env_token
    try:
        data = json.loads(credentials_path.read_text())
    except (OSError, ValueError):
        return None
    tokens = data.get("accessTokens") or {}
    return tokens.get(api_url.rstrip("/")) or tokens.get(data.get("current", ""))


class TerminalInput:
    """
    Reads stdin lines in a worker thread.

    A blocked read cannot be interrupted, so when Ctrl+C cancels a turn in
    the middle of the pick list or the token prompt, the pending read is
    kept and the next caller receives its line.
    """

    def __init__(self):
        self._pending: asyncio.Future | None = None

    async def read(self, prompt: str, reader=None) -> str:
        if self._pending is None:
            self._pending = asyncio.ensure_future(asyncio.to_thread(reader or input, prompt))
        else:
            print(prompt, end="", flush=True)
        try:
            return await asyncio.shield(self._pending)
        finally:
            if self._pending is not None and self._pending.done():
                self._pending = None


STDIN = TerminalInput()


class TerminalSession:
    """Identity-session source for the terminal host."""

    def __init__(
        self,
        api_url: str,
        credentials_path: Path = CREDENTIALS_PATH,
        terminal: TerminalInput = STDIN,
    ):
        self.api_url = api_url
        self.credentials_path = credentials_path
        self.terminal = terminal
        self._cached: AuthenticationToken | None = None

    async def __call__(self, force_new: bool, detail: str | None) -> AuthenticationToken | None:
        if not force_new:
            if self._cached:
                return self._cached
            token = stored_token(self.api_url, self.credentials_path)
            if token:
                self._cached = AuthenticationToken(token)
                return self._cached

        if detail:
            print(f"  ⚠  {detail}")
        entered = await self.terminal.read(
            "  Pulumi access token (blank to cancel): ", reader=getpass.getpass
        )
        entered = entered.strip()
        self._cached = AuthenticationToken(entered) if entered else None
        return self._cached


class TerminalStream:
    """Prints a turn's output as it is produced."""

    def markdown(self, text: str):
        print(f"\n{text}")

    def progress(self, text: str):
        print(f"  {C_DIM}… {text}{C_RESET}")

    def button(self, command):
        url = command.arguments[0] if command.arguments else ""
        print(f"\n  {C_BUTTON}[{command.title}]{C_RESET} {url}")


async def terminal_picker(organizations: Sequence[OrganizationSummary]) -> str | None:
    print("\n  Which Pulumi organization should Copilot use?")
    for i, org in enumerate(organizations, 1):
        label = f" — {org.name}" if org.name and org.name != org.github_login else ""
        print(f"    {i}. {org.github_login}{label}")
    answer = (await STDIN.read("  number (blank to cancel)> ")).strip()
    if not answer:
        return None
    if answer.isdigit() and 1 <= int(answer) <= len(organizations):
        return organizations[int(answer) - 1].github_login
    return answer


def _make_handler(cfg: dict):
    from pulumipus.chat.handler import Handler

    provider = SessionTokenProvider(TerminalSession(cfg["api"]["url"]))
    return Handler.from_config(provider, picker=terminal_picker, cfg=cfg)


async def _run_turn(handler, request, context, stream):
    from pulumipus.cancellation import CancellationToken

    token = CancellationToken()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    try:
        return await handler.handle_request(request, context, stream, token)
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)


async def _chat(cfg: dict, first_prompt: str):
    from pulumipus.chat.directives import parse_directive
    from pulumipus.chat.types import ChatContext, RequestTurn, ResponseTurn, TurnRequest

    handler = _make_handler(cfg)
    stream = TerminalStream()
    context = ChatContext()
    pending = first_prompt

    while True:
        if pending:
            text, pending = pending, ""
        else:
            try:
                text = (await STDIN.read(f"\n  {C_BOLD}you>{C_RESET} ")).strip()
            except EOFError:
                break
        if not text:
            continue
        if text.lower() in ("exit", "quit", "q"):
            break

        directive = parse_directive(text)
        request = TurnRequest(prompt=directive.prompt, command=directive.command)
        result = await _run_turn(handler, request, context, stream)

        if result.cancelled:
            print(f"  {C_DIM}[cancelled]{C_RESET}")
        elif result.error_details:
            print(f"\n  {C_ERROR}✗  {result.error_details.message}{C_RESET}")

        context.history.append(RequestTurn(
            prompt=directive.prompt, participant=handler.participant, command=directive.command,
        ))
        context.history.append(ResponseTurn(
            participant=handler.participant, result=result, command=directive.command,
        ))

        followups = handler.provide_followups(result, context)
        if followups:
            print("\n  Suggestions:")
            for f in followups:
                print(f"    /{f.command} {f.prompt}   {C_DIM}{f.label}{C_RESET}")

    print(f"  {C_DIM}[bye]{C_RESET}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_chat(args):
    """Chat with Pulumi Copilot."""
    from pulumipus.config import get_config, setup_logging

    cfg = get_config()
    setup_logging({"logging": {**cfg["logging"], "level": args.log_level or "WARNING"}})
    print(BANNER)
    print(f"  API: {cfg['api']['url']}   (/help for commands, Ctrl+C cancels a request)")
    try:
        asyncio.run(_chat(cfg, " ".join(args.prompt)))
    except KeyboardInterrupt:
        print(f"\n  {C_DIM}[bye]{C_RESET}")


def cmd_whoami(args):
    """Show the signed-in user and their organizations."""
    from pulumipus.api.client import Client
    from pulumipus.config import get_config
    from pulumipus.errors import CopilotError

    cfg = get_config()
    provider = SessionTokenProvider(TerminalSession(cfg["api"]["url"]))
    client = Client(cfg["api"]["url"], f"pulumipus/{__version__}", provider,
                    timeout=cfg["api"].get("timeout", 120))
    try:
        user = asyncio.run(client.get_user_info())
    except CopilotError as e:
        print(f"  ✗  {e.message}")
        sys.exit(1)

    print(f"  {user.name} ({user.github_login}) <{user.email}>")
    print(f"  MFA: {'on' if user.has_mfa else 'off'}")
    if not user.organizations:
        print("  Organizations: none")
    for org in user.organizations:
        print(f"    • {org.github_login}" + (f" — {org.name}" if org.name else ""))


def cmd_tap(args):
    """Watch the Copilot wire log."""
    from pulumipus.wiretap import live_tap
    live_tap(
        log_path=args.log,
        follow=not args.no_follow,
        last_n=args.last,
        kind_filter=args.kind,
        raw=args.raw,
    )


def cmd_serve(args):
    """Run the HTTP host bridge."""
    import uvicorn
    from pulumipus.config import get_config

    cfg = get_config()
    host = args.host or cfg["server"]["host"]
    port = args.port or cfg["server"]["port"]

    print(BANNER)
    print(f"  Listening on {host}:{port}")
    print(f"  API: {cfg['api']['url']}")
    print()

    uvicorn.run(
        "pulumipus.main:app",
        host=host,
        port=port,
        reload=args.reload,
        log_level="info",
    )


def cmd_banner(args):
    """Print the banner."""
    print(BANNER)


# ---------------------------------------------------------------------------
# Parser with aliases
# ---------------------------------------------------------------------------

def _add_command(subparsers, names, help_text, func, setup_fn=None):
    """Register a command under its name and aliases."""
    p = subparsers.add_parser(names[0], help=help_text, aliases=names[1:])
    p.set_defaults(func=func)
    if setup_fn:
        setup_fn(p)
    return p


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pulumipus",
        description="Pulumipus — Pulumi Copilot in your terminal.",
        epilog="Run 'pulumipus <command> --help' for command-specific options.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", "-V", action="version",
        version=f"pulumipus {__version__}",
    )

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    def setup_chat(p):
        p.add_argument("prompt", nargs="*", help="First prompt (omit to start at the prompt)")
        p.add_argument("--log-level", default=None, help="Logging level while chatting (default: WARNING)")

    _add_command(sub, ["chat", "ask", "repl"], "Chat with Pulumi Copilot", cmd_chat, setup_chat)

    _add_command(sub, ["whoami", "user"], "Show the signed-in user and organizations", cmd_whoami)

    def setup_tap(p):
        p.add_argument("--log", default=None, help="Path to wire.jsonl (default: from config)")
        p.add_argument("--last", "-n", type=int, default=20, help="Show last N entries before following")
        p.add_argument("--kind", "-k", choices=["prompt", "response", "status", "trace", "program"],
                       default=None, help="Filter by message kind")
        p.add_argument("--no-follow", action="store_true", help="Don't follow, just show last entries")
        p.add_argument("--raw", action="store_true", help="Raw JSONL output, no formatting")

    _add_command(sub, ["tap", "log", "tail"], "Watch the Copilot wire log", cmd_tap, setup_tap)

    def setup_serve(p):
        p.add_argument("--host", default=None, help="Override listen host")
        p.add_argument("--port", "-p", type=int, default=None, help="Override listen port")
        p.add_argument("--reload", action="store_true", help="Auto-reload on code changes (dev)")

    _add_command(sub, ["serve", "start", "up"], "Run the HTTP host bridge", cmd_serve, setup_serve)

    _add_command(sub, ["banner"], "Print the banner", cmd_banner)
    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        cmd_banner(args)
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
