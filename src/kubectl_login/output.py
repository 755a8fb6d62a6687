"""Terminal output for kubectl-login, split strictly between stdout and stderr.

kubectl parses whatever the plugin writes to stdout, so the rule is absolute:

* **stdout** carries data only -- the ``ExecCredential`` JSON and the
  ``status`` table.
* **stderr** carries everything meant for a human -- login URLs, device
  codes, progress, warnings, and errors. kubectl passes it through to the
  user's terminal.

Colour follows `clig.dev <https://clig.dev/>`_: Rich styling when stdout is a
terminal, plain text when it is piped or when ``NO_COLOR``, ``TERM=dumb``, or
``--no-color`` is in effect.

:func:`~kubectl_login.app.main_callback` installs one :class:`OutputManager`
per invocation with :func:`set_output`; library code calls the module-level
helpers (:func:`info`, :func:`warning`, ...) and never holds a manager.
Records from the standard :mod:`logging` tree under ``kubectl_login`` reach
the same stderr console through :func:`configure_logging`.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

LOGGER_NAME = "kubectl_login"


class OutputFormat(str, Enum):
    """How data written to stdout is rendered.

    ``AUTO`` picks ``RICH`` for a colour-capable terminal and ``PLAIN``
    otherwise. ``JSON`` only changes tabular data; the exec credential is
    always JSON.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _is_tty() -> bool:
    """Check if stdout is a TTY."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb`` turn colour off."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


class OutputManager:
    """Routes data to stdout and diagnostics to stderr.

    Args:
        format: Rendering of stdout data. ``AUTO`` is resolved immediately.
        no_color: Write diagnostics as plain text without Rich styling.
        quiet: Drop ``info``, ``success``, and ``suggest`` messages. Warnings
            and errors are always shown.
        verbose: Show ``debug`` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        if format is OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format is OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        """Console bound to stderr; shared with the logging handler."""
        return self._stderr

    # -- stdout ----------------------------------------------------------

    def print_data(self, text: str) -> None:
        """Write *text* and a newline to stdout, unstyled."""
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows to stdout as a Rich table, a JSON array, or TSV.

        The title is only rendered by the Rich table.
        """
        if self._format is OutputFormat.JSON:
            self.print_data(
                json.dumps([dict(zip(headers, row)) for row in rows], indent=2, ensure_ascii=False)
            )
            return
        if self._format is OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(title=title, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # -- stderr ----------------------------------------------------------

    def _emit(self, message: str, label: str = "", style: Optional[str] = None) -> None:
        if self._no_color:
            prefix = f"{label} " if label else ""
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
            return
        if label:
            self._stderr.print(f"[{style}]{label}[/{style}]", end=" ")
            self._stderr.print(message, markup=False, highlight=False)
        else:
            self._stderr.print(message, style=style, markup=False, highlight=False)

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, style="green")

    def warning(self, message: str) -> None:
        self._emit(message, label="Warning:", style="yellow")

    def error(self, message: str) -> None:
        self._emit(message, label="Error:", style="bold red")

    def suggest(self, message: str) -> None:
        """Print a next step, e.g. ``→ Run 'kubectl get pods'``."""
        if not self._quiet:
            self._emit(f"→ {message}", style="dim")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(f"[debug] {message}", style="dim")


def configure_logging(verbose: bool = False) -> None:
    """Attach a :class:`~rich.logging.RichHandler` on stderr to the package logger.

    Warnings and above are shown by default, everything with *verbose*.
    Calling it again replaces the handler instead of adding a second one.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)

    handler = RichHandler(
        console=get_output().stderr_console,
        show_time=verbose,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


# -- process-wide manager ------------------------------------------------

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (tests swap stdout/stderr between runs)."""
    global _output
    _output = None


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
