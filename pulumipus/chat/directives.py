"""
Directives: structured instructions that are not Copilot prompts.

Editor hosts deliver the directive separately from the prompt text
(TurnRequest.command). Text hosts such as the CLI type it inline:

    /org acme      → make "acme" the active organization
    /org           → forget the active organization (asked again next turn)
    /help          → list directives

Anything else is passed to Copilot untouched.
"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ORG_COMMAND = "org"
HELP_COMMAND = "help"

KNOWN_COMMANDS = {ORG_COMMAND, HELP_COMMAND}

DIRECTIVE_PATTERN = re.compile(r"^\s*/(\w+)\b\s*(.*)$", re.DOTALL)

HELP_TEXT = """Available commands:

  /org <name>   switch the active Pulumi organization (starts a new conversation)
  /org          clear the active organization
  /help         show this help

Anything else is sent to Pulumi Copilot."""


@dataclass
class Directive:
    command: str | None = None  # None when the text is a plain prompt
    prompt: str = ""


def parse_directive(text: str) -> Directive:
    """
    Split inline text into a directive and its argument.

    Unknown slash words are left in the prompt, so "/usr/bin is missing"
    still reaches Copilot.
    """
    match = DIRECTIVE_PATTERN.match(text or "")
    if not match:
        return Directive(prompt=(text or "").strip())

    command = match.group(1).lower()
    if command not in KNOWN_COMMANDS:
        return Directive(prompt=text.strip())

    rest = match.group(2).strip()
    logger.debug("directive: /%s %s", command, rest or "(no argument)")
    return Directive(command=command, prompt=rest)
