"""
Nautilus shell: the dispatch loop and the factories building ready-to-use shells.

Per line
1. a trimmed "?" prints the hint banner; an empty token list does nothing;
2. token 0 names the command, resolved by name and argument count;
3. the remaining tokens are converted to the command's parameter types;
4. the header (if any) is formatted with the converted arguments and printed;
5. the command is invoked and timed; a non-None result (or the error the
   handler raised) is rendered, followed by "time: N ms" when display-time is
   on and N is not 0.

Loop
- reads lines until one whose trimmed text is "exit", or the end of input;
- every ShellException (RenderError wraps output converter and rendering
  failures) is recorded as the last exception and rendered on the
  error console (with a pointer under the token for conversion errors); the
  loop goes on. Errors on the "exit" line are recorded but not rendered.

Handler hooks (all optional)
- __shell__(shell): called when the handler is added to a shell.
- __enter_loop__() / __leave_loop__(): called around command_loop().

Quick example
    >>> class Calculator:
    ...     @command
    ...     def add(self, a: int, b: int) -> int:
    ...         return a + b
    >>> shell = create_console_shell("calc", "Calculator", Calculator())
    >>> shell.process_line("add 2 3")
    5
"""
import logging
import time
from collections import namedtuple
from types import MappingProxyType
from typing import Annotated

from .console import ConsoleIO
from .conversion import InputConversion, OutputConversion
from .declarations import CommandDeclaration, command, declared_commands, describe, param
from .faults import HeaderError, InputError, RenderError, ShellException, TokenConversionError
from .help import HelpHandler
from .naming import DashJoinedNamer
from .registry import CommandTable
from .tokens import tokenize
from .utils import Unset, coalesce, mirror

logger = logging.getLogger(__name__)

HINT = "This is %s, running on Nautilus\nFor more information on the shell, enter ?help"

_TIME_FORMAT = "time: %d ms"


def _hook(handler, name, /, *arguments):
    hook = getattr(handler, name, None)
    if callable(hook):
        hook(*arguments)


class ShellConfig(namedtuple("ShellConfig", ("input", "output", "aux_handlers", "display_time"))):
    """
    What a shell shares with its subshells.

    Fields
    - input: line source exposing read_line(path).
    - output: sink exposing output(), render_header(), render_error() and
      render_token_error().
    - aux_handlers: mapping prefix -> tuple of handlers, registered on every
      shell built from this configuration.
    - display_time: bool, initial display-time mode.
    """
    __slots__ = ()

    def __new__(cls, input, output, aux_handlers=None, display_time=False):
        if not callable(getattr(input, "read_line", None)):
            raise TypeError("shell-config 'input' must implement read_line()")
        for method in ("output", "render_header", "render_error", "render_token_error"):
            if not callable(getattr(output, method, None)):
                raise TypeError(f"shell-config 'output' must implement {method}()")

        frozen = MappingProxyType({
            prefix: tuple(handlers)
            for prefix, handlers in dict(aux_handlers or {}).items()
        })
        return super().__new__(cls, input, output, frozen, bool(display_time))

    def with_aux_handlers(self, aux_handlers, /):
        """
        Return a copy of this configuration with aux_handlers added to the existing ones.
        """
        merged = {prefix: list(handlers) for prefix, handlers in self.aux_handlers.items()}
        for prefix, handlers in dict(aux_handlers or {}).items():
            merged.setdefault(prefix, []).extend(handlers)
        return ShellConfig(self.input, self.output, merged, self.display_time)


class Shell:
    """
    A command table bound to a line source and an output sink.

    Parameters
    - config: ShellConfig; its aux handlers are registered immediately.
    - table: CommandTable receiving every command of every handler.
    - path: sequence of prompt elements ("app", "sub") joined by "/".
    - app_name: str (keyword-only), printed when the loop starts and in the hint.
    """
    table = mirror("table")
    path = mirror("path")
    handlers = mirror("handlers")
    app_name = mirror("app_name")
    input_conversion = mirror("input_conversion")
    output_conversion = mirror("output_conversion")
    last_exception = mirror("last_exception")

    def __init__(self, config, table, path, /, *, app_name=Unset):
        if not isinstance(config, ShellConfig):
            raise TypeError("shell 'config' must be a shell-config")
        if not isinstance(table, CommandTable):
            raise TypeError("shell 'table' must be a command-table")

        self._table = table
        self._path = tuple(path)
        self._app_name = coalesce(app_name, None)
        self._input = config.input
        self._output = config.output
        self._display_time = config.display_time
        self._input_conversion = InputConversion()
        self._output_conversion = OutputConversion()
        self._aux_handlers = {}
        self._handlers = []
        self._last_exception = None

        for prefix, handlers in config.aux_handlers.items():
            for handler in handlers:
                self.add_aux_handler(handler, prefix)

    @property
    def config(self):
        return ShellConfig(self._input, self._output, self._aux_handlers, self._display_time)

    @property
    def display_time(self):
        return self._display_time

    # --- registration ---

    def _attach(self, handler, prefix):
        if handler is None:
            raise TypeError("shell handler cannot be None")
        if not isinstance(prefix, str):
            raise TypeError("shell handler prefix must be a string")

        self._handlers.append(handler)
        for declaration in declared_commands(handler):
            self._register(declaration, prefix)
        self._input_conversion.add_declared_converters(handler)
        self._output_conversion.add_declared_converters(handler)
        _hook(handler, "__shell__", self)
        logger.debug("added handler %s under prefix %r", type(handler).__name__, prefix)

    def add_main_handler(self, handler, prefix="", /):
        self._attach(handler, prefix)

    def add_aux_handler(self, handler, prefix, /):
        """
        Add a handler that subshells built from this shell's config inherit.
        """
        self._aux_handlers.setdefault(prefix, []).append(handler)
        self._attach(handler, prefix)

    def _register(self, declaration, prefix):
        return self._table.register(
            declaration.identifier,
            declaration.invoker,
            declaration.params,
            prefix=prefix,
            name=declaration.name,
            abbrev=declaration.abbrev,
            description=declaration.description,
            header=declaration.header,
            returns=declaration.returns,
        )

    def add_command(self, source, /, prefix="", **metadata):
        """
        Register one command explicitly and return its descriptor.

        source is either a CommandDeclaration or a callable described from its
        signature; metadata (identifier, name, abbrev, description, header)
        overrides what the callable declares.
        """
        if not isinstance(source, CommandDeclaration):
            source = describe(source, **metadata)
        elif metadata:
            raise TypeError("add_command() metadata cannot be combined with a command-declaration")
        return self._register(source, prefix)

    # --- dispatch ---

    def process_line(self, line, /):
        """
        Run one command line.

        Raises
        - ShellException: the line cannot be resolved or converted, its header
          cannot be formatted, or its result cannot be displayed.
        """
        if line.strip() == "?":
            self._display(HINT % self._app_name)
            return

        tokens = tokenize(line)
        if tokens:
            self._process_command(tokens)

    def _process_command(self, tokens):
        descriptor = self._table.resolve(tokens[0].text, len(tokens) - 1)
        arguments = self._input_conversion.convert_parameters(tokens, descriptor)

        if descriptor.header:
            try:
                header = descriptor.header.format(*arguments)
            except Exception as error:
                raise HeaderError(
                    "cannot format the header of %s%s: %s" % (descriptor.prefix, descriptor.name, error),
                    hint="reference the arguments by position, e.g. {0}",
                ) from error
            self._output.render_header(header)

        before = time.perf_counter()
        outcome = descriptor.invoke(arguments)
        elapsed = int((time.perf_counter() - before) * 1000)

        if outcome.displayable is not None:
            self._display(outcome.displayable)
        if self._display_time and elapsed != 0:
            self._display(_TIME_FORMAT % elapsed)

    def _display(self, value):
        try:
            self._output.output(value, self._output_conversion)
        except ShellException:
            raise
        except Exception as error:
            raise RenderError("cannot display %s: %s" % (type(value).__name__, error)) from error

    def command_loop(self):
        """
        Read and run lines until "exit" or the end of input.
        """
        for handler in self._handlers:
            _hook(handler, "__enter_loop__")

        try:
            self._output.output(self._app_name, self._output_conversion)
            line = ""
            while line.strip() != "exit":
                try:
                    line = self._input.read_line(self._path)
                    if line is None:
                        break
                    self.process_line(line)
                except InputError as error:
                    self._last_exception = error
                    self._output.render_error(error)
                    break
                except TokenConversionError as error:
                    self._last_exception = error
                    if line.strip() != "exit":
                        self._output.render_token_error(error)
                except ShellException as error:
                    self._last_exception = error
                    if line.strip() != "exit":
                        self._output.render_error(error)
        finally:
            for handler in self._handlers:
                _hook(handler, "__leave_loop__")

    # --- commands ---

    @command(description="Turns command execution time display on and off")
    def set_display_time(self, display: Annotated[bool, param("do-display-time", "true to display, false otherwise")]):
        self._display_time = display

    @command(description="Returns the last error raised while processing a line")
    def get_last_exception(self):
        return self._last_exception


def create_console_shell(prompt, app_name, /, *handlers, aux_handlers=None, io=Unset):
    """
    Build a shell reading from and writing to the console.

    Prefixes
    - "!": the shell's own commands and the console commands (run-script,
      enable-logging, disable-logging).
    - "?": help commands.
    - "": every handler passed positionally.

    aux_handlers maps prefixes to handlers inherited by subshells.
    """
    io = ConsoleIO() if io is Unset else io
    auxiliaries = {prefix: list(handlers) for prefix, handlers in dict(aux_handlers or {}).items()}
    auxiliaries.setdefault("!", []).append(io)

    shell = Shell(
        ShellConfig(io, io, auxiliaries, False),
        CommandTable(DashJoinedNamer(True)),
        (prompt,),
        app_name=app_name,
    )
    shell.add_main_handler(shell, "!")
    shell.add_main_handler(HelpHandler(), "?")
    for handler in handlers:
        shell.add_main_handler(handler, "")
    return shell


def create_subshell(path_element, parent, app_name, handler, /, aux_handlers=None):
    """
    Build a shell nested in parent: same I/O, parent's aux handlers plus
    aux_handlers, a fresh command table sharing the parent's naming strategy,
    and a prompt extended with path_element.

    Run it from a command of the parent with subshell.command_loop().
    """
    subshell = Shell(
        parent.config.with_aux_handlers(aux_handlers),
        CommandTable(parent.table.namer),
        (*parent.path, path_element),
        app_name=app_name,
    )
    subshell.add_main_handler(subshell, "!")
    subshell.add_main_handler(HelpHandler(), "?")
    subshell.add_main_handler(handler, "")
    return subshell


__all__ = (
    "HINT",
    "ShellConfig",
    "Shell",
    "create_console_shell",
    "create_subshell",
)
