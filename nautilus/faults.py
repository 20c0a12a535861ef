"""
Nautilus faults (errors raised while resolving and running a command line).

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain to keep copy consistent and logs searchable.
- ShellException: base type carrying a message, a hint and a fault code, which
  knows how to render itself with rich (position-free, lowercased, actionable).
- Concrete faults for each stage of the line pipeline:
  • resolution: CommandNotFoundError, ArityMismatchError, AmbiguousCommandError
  • conversion: ConversionError, TokenConversionError (carries the offending token)
  • plumbing:   InputError, HeaderError, RenderError

Recovery
- The command loop catches ShellException, records it as the shell's last
  exception, renders it on the error console and reads the next line.
- Errors raised by handlers themselves are not faults: they become the
  command's displayed result (see registry.InvocationFailure).

Customization
- Define __styles__ in __main__ to override palette entries.
- Define __codes__ in __main__ to map FaultCode members to custom labels.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.text import Text

from .tokens import escape
from .utils import Unset, coalesce


class FaultCode(IntEnum):
    """
    canonical fault codes used across the shell (stable identifiers).

    grouping
    - resolution (1110x): UNKNOWN_COMMAND, ARITY_MISMATCH, AMBIGUOUS_COMMAND
    - conversion (1111x): UNCONVERTIBLE_VALUE, UNCONVERTIBLE_TOKEN
    - plumbing   (1112x): INPUT_FAILURE, MALFORMED_HEADER, RENDER_FAILURE
    - generic    (11199): SHELL_ERROR
    """
    # --- resolution errors ---
    UNKNOWN_COMMAND     = 11101
    ARITY_MISMATCH      = 11102
    AMBIGUOUS_COMMAND   = 11103

    # --- conversion errors ---
    UNCONVERTIBLE_VALUE = 11111
    UNCONVERTIBLE_TOKEN = 11112

    # --- plumbing errors ---
    INPUT_FAILURE       = 11121
    MALFORMED_HEADER    = 11122
    RENDER_FAILURE      = 11123

    # --- generic ---
    SHELL_ERROR         = 11199

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class ShellException(Exception):
    """
    base class of every fault surfaced by the command pipeline.

    parameters
    - message: str, the one-sentence explanation shown to the user.
    - hint: str (keyword-only), a single actionable suggestion.
    - **options: extra context kept read-only in .options (e.g. discriminator, count).
    """
    code = FaultCode.SHELL_ERROR
    title = "shell error"

    def __init__(self, message, /, *, hint=Unset, **options):
        if not isinstance(message, str):
            raise TypeError(f"{type(self).__name__} message must be a string")
        super().__init__(message)
        self.message = message
        self.hint = coalesce(hint)
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message

    def __rich__(self):
        styles = defaultdict(str, {
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(__import__("__main__"), "__styles__", {}))

        header = Text.assemble(
            "[ ",
            (self.code.normalize(), styles["code"]),
            " | ",
            (self.title.title(), styles["error-title"]),
            " ]",
        )
        message = Text(self.message, styles["error-message"])

        if not self.hint:
            return Group(header, message)

        hint = Text.assemble((" → ", styles["hint-arrow"]), (self.hint, styles["hint"]))
        return Group(header, message, hint)


class CommandNotFoundError(ShellException):
    code = FaultCode.UNKNOWN_COMMAND
    title = "unknown command"

    def __init__(self, discriminator, /):
        super().__init__(
            "unknown command %s" % escape(discriminator),
            hint="enter ?list to see the available commands",
            discriminator=discriminator,
        )
        self.discriminator = discriminator


class ArityMismatchError(ShellException):
    code = FaultCode.ARITY_MISMATCH
    title = "wrong number of arguments"

    def __init__(self, discriminator, count, /):
        super().__init__(
            "there's no command %s taking %d arguments" % (escape(discriminator), count),
            hint="enter ?help %s to see the accepted parameters" % escape(discriminator),
            discriminator=discriminator,
            count=count,
        )
        self.discriminator = discriminator
        self.count = count


class AmbiguousCommandError(ShellException):
    code = FaultCode.AMBIGUOUS_COMMAND
    title = "ambiguous command"

    def __init__(self, discriminator, count, /, candidates=()):
        super().__init__(
            "ambiguous command %s taking %d arguments" % (escape(discriminator), count),
            hint="rename one of the %d commands sharing this name" % len(candidates) if candidates else Unset,
            discriminator=discriminator,
            count=count,
        )
        self.discriminator = discriminator
        self.count = count
        self.candidates = tuple(candidates)


class ConversionError(ShellException):
    code = FaultCode.UNCONVERTIBLE_VALUE
    title = "cannot convert value"


class TokenConversionError(ConversionError):
    """
    conversion failure bound to the token that caused it.

    the token keeps its offset in the line so the console can underline the
    exact characters that could not be converted.
    """
    code = FaultCode.UNCONVERTIBLE_TOKEN
    title = "cannot convert argument"

    def __init__(self, token, message, /, **options):
        super().__init__(message, token=token, **options)
        self.token = token


class InputError(ShellException):
    code = FaultCode.INPUT_FAILURE
    title = "cannot read input"


class HeaderError(ShellException):
    code = FaultCode.MALFORMED_HEADER
    title = "malformed header"


class RenderError(ShellException):
    code = FaultCode.RENDER_FAILURE
    title = "cannot display the result"


__all__ = (
    "FaultCode",
    "ShellException",
    "CommandNotFoundError",
    "ArityMismatchError",
    "AmbiguousCommandError",
    "ConversionError",
    "TokenConversionError",
    "InputError",
    "HeaderError",
    "RenderError",
)
