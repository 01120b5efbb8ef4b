"""Terminal collaborator used for prompts, messages and the busy indicator.

The flow only relies on the methods of ``ConsoleTerminal`` (echo, read_line,
read_secret, start_busy, stop_busy); tests swap in a scripted object with the
same methods.
"""

import getpass
from contextlib import contextmanager

from rich.console import Console


class ConsoleTerminal:
    """Interactive terminal backed by a ``rich`` console on stderr.

    Stdout is left alone so the credentials printed by the CLI can be piped
    or used as a ``credential_process``.
    """

    def __init__(self, console=None):
        self.console = console or Console(stderr=True)
        self._status = None

    def echo(self, message, style=None):
        self.console.print(message, style=style, markup=False, highlight=False)

    def read_line(self, prompt):
        return self.console.input(prompt).strip()

    def read_secret(self, prompt):
        return getpass.getpass(prompt)

    def start_busy(self, message="Working..."):
        if self._status is not None:
            return
        self._status = self.console.status(message)
        self._status.start()

    def stop_busy(self):
        if self._status is None:
            return
        self._status.stop()
        self._status = None


@contextmanager
def busy(terminal, message="Working..."):
    """Show *terminal*'s busy indicator for the duration of the block."""
    terminal.start_busy(message)
    try:
        yield
    finally:
        terminal.stop_busy()
