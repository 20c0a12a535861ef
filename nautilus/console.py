"""
Nautilus console I/O: the line source and the output sink of a shell.

ConsoleIO reads command lines from a text stream (or a replayed script) and
renders headers, results and errors on two rich consoles.

Input states
- LIVE: prompt is "<path>> " and lines come from the input stream.
- REPLAY: prompt is "<path>$ " and lines come from a script file opened by the
  run-script command; when the script is exhausted it is closed and reading
  falls back to LIVE before the next prompt.

Output
- output(value, conversion) applies the output converters once, then flattens a
  top-level list/tuple/collection by one level without header, converting each
  element on its own. Nested values print "Array" or "Collection" followed by
  their elements, one indentation level deeper.
- exceptions print their description followed by the traceback.
- rich renderables are printed as-is; anything else by its str().

Logging
- enable-logging FILENAME duplicates every prompt, typed line, result and
  error into FILENAME (plain text, no colors); disable-logging closes it.
  The logfile is also closed when the loop that enabled it is left.
"""
import logging
import sys
import traceback
from collections.abc import Collection, Mapping
from enum import Enum
from typing import Annotated

from rich.console import Console
from rich.padding import Padding
from rich.text import Text

from .declarations import command, param
from .faults import InputError
from .utils import Unset, coalesce


logger = logging.getLogger(__name__)

_INDENT = 4


class InputState(Enum):
    LIVE = "> "
    REPLAY = "$ "

    @property
    def suffix(self):
        return self.value


def _renderable(value):
    return hasattr(value, "__rich__") or hasattr(value, "__rich_console__")


def _exception_lines(error):
    lines = "".join(traceback.format_exception_only(type(error), error)).rstrip("\n").splitlines()
    if error.__traceback__ is not None:
        lines.extend("".join(traceback.format_tb(error.__traceback__)).rstrip("\n").splitlines())
    return lines


class ConsoleIO:
    """
    Console line source and output sink.

    Parameters
    - stdin: text stream commands are read from (sys.stdin by default).
    - out: rich Console for prompts, headers and results.
    - err: rich Console for errors.
    - colorful: bool (keyword-only), when False the default consoles print
      without colors.
    """

    def __init__(self, stdin=Unset, out=Unset, err=Unset, *, colorful=True):
        options = {"highlight": False} if colorful else {"highlight": False, "color_system": None}

        self._stdin = coalesce(stdin, sys.stdin)
        self._out = Console(**options) if out is Unset else out
        self._err = Console(stderr=True, **options) if err is Unset else err
        self._state = InputState.LIVE
        self._script = None
        self._offset = 0
        self._log = None
        self._logfile = None
        self._loops = 0

    @property
    def state(self):
        return self._state

    @property
    def logging(self):
        return self._log is not None

    # --- low level printing ---

    def _print(self, renderable, /, *, end="\n", error=False):
        console = self._err if error else self._out
        console.print(renderable, end=end, soft_wrap=True)
        if self._log is not None:
            self._log.print(renderable, end=end, soft_wrap=True)

    # --- line source ---

    def read_line(self, path, /):
        """
        Prompt and return the next command line, or None at the end of input.

        Raises
        - InputError: the input stream or the script cannot be read.
        """
        prompt = "/".join(path)
        if self._state is InputState.REPLAY:
            try:
                line = self._script.readline()
            except (OSError, ValueError) as error:
                self._close_script()
                raise InputError("cannot read the script: %s" % error) from error
            if line:
                line = line.rstrip("\r\n")
                self._prompt(prompt)
                self._print(Text(line))
                return line
            self._close_script()

        try:
            self._prompt(prompt)
            line = self._stdin.readline()
        except (OSError, ValueError) as error:
            raise InputError("cannot read the next command: %s" % error) from error

        if not line:
            return None
        line = line.rstrip("\r\n")
        if self._log is not None:
            self._log.print(Text(line), soft_wrap=True)
        return line

    def _prompt(self, prompt):
        prompt = prompt + self._state.suffix
        self._print(Text(prompt), end="")
        self._offset = len(prompt)

    def _close_script(self):
        if self._script is not None:
            self._script.close()
            self._script = None
        self._state = InputState.LIVE
        logger.debug("script exhausted, reading live input")

    # --- output sink ---

    def render_header(self, text, /):
        if text is not None:
            self._print(Text(text))

    def output(self, value, conversion, /):
        """
        Render a command result.

        The converters run once on the top-level value; a top-level list, tuple
        or collection is then flattened by one level, each element rendered
        (and converted) on its own, without any header.
        """
        if value is None:
            return

        value = conversion.convert(value)
        if self._container(value):
            for element in value:
                self._output(element, 0, conversion)
        else:
            self._render(value, 0, conversion)

    def _output(self, value, indent, conversion):
        if value is None:
            return
        self._render(conversion.convert(value), indent, conversion)

    @staticmethod
    def _container(value):
        if isinstance(value, (str, bytes, Mapping)) or _renderable(value):
            return False
        return isinstance(value, (list, tuple, Collection))

    def _render(self, value, indent, conversion):
        margin = " " * (_INDENT * indent)

        if isinstance(value, BaseException):
            for line in _exception_lines(value):
                self._print(Text(margin + line))
        elif _renderable(value):
            self._print(Padding(value, (0, 0, 0, _INDENT * indent), expand=False) if indent else value)
        elif self._container(value):
            self._print(Text(margin + ("Array" if isinstance(value, (list, tuple)) else "Collection")))
            for element in value:
                self._output(element, indent + 1, conversion)
        else:
            self._print(Text(margin + str(value)))

    def render_token_error(self, error, /):
        """
        Underline the offending token of the last prompted line, then render the error.
        """
        token = error.token
        self._print(Text("-" * (token.index + self._offset) + "^" * len(token.text)), error=True)
        self._print(error, error=True)

    def render_error(self, error, /):
        self._print(self._describe(error), error=True)
        if error.__cause__ is not None:
            self._print(self._describe(error.__cause__), error=True)

    @staticmethod
    def _describe(error):
        if _renderable(error):
            return error
        return Text("".join(traceback.format_exception_only(type(error), error)).rstrip("\n"))

    # --- loop hooks ---

    def __enter_loop__(self):
        if self._log is not None:
            self._loops += 1

    def __leave_loop__(self):
        if self._log is not None:
            self._loops -= 1
        if self._loops < 0:
            self.disable_logging()

    # --- commands ---

    @command(description="Reads commands from file")
    def run_script(self, filename: Annotated[str, param("filename", "Full file name of the script")]):
        script = open(filename, encoding="utf-8", errors="replace")
        if self._script is not None:
            self._script.close()
        self._script = script
        self._state = InputState.REPLAY
        logger.debug("replaying script %s", filename)

    @command(description="Sets up logging, which duplicates all subsequent output in a file")
    def enable_logging(self, filename: Annotated[str, param("filename", "Name of the logfile")]):
        logfile = open(filename, "w", encoding="utf-8")
        if self._logfile is not None:
            self._logfile.close()
        self._logfile = logfile
        self._log = Console(file=logfile, color_system=None, highlight=False, width=self._out.width)
        self._loops = 0
        logger.debug("logging to %s", filename)

    @command(description="Turns off logging")
    def disable_logging(self) -> str:
        if self._log is None:
            return "Logging is already disabled"
        self._logfile.close()
        self._logfile = None
        self._log = None
        self._loops = 0
        return "Logging disabled"


__all__ = (
    "InputState",
    "ConsoleIO",
)
