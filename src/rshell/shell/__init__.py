"""The interactive command dispatcher.

Public API:
    Shell -- the read/route/execute loop
    parse_command -- classify a tokenized line
    tokenize -- split a line into tokens
"""

from rshell.shell.commands import CommandSyntaxError, parse_command, tokenize
from rshell.shell.dispatcher import Shell

__all__ = ["CommandSyntaxError", "Shell", "parse_command", "tokenize"]
