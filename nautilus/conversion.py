"""
Nautilus conversions: text → typed arguments, results → displayable values.

InputConversion
- Custom converters are callables (text, target) -> value | None, tried in
  registration order; the first non-None result wins and must be an instance
  of the target type.
- Elementary rules apply when no converter answers:
  • str, object, typing.Any (or a target the text already is) → the text itself
  • int, float → parsed from the trimmed text (ASCII digits, no "_" separators)
  • bool       → True when the trimmed text is "true" (any case), else False
  • any other class constructible from one string → target(text)
- convert_parameters() turns the tokens of a line into the argument tuple of a
  command, reporting failures as TokenConversionError on the offending token.

OutputConversion
- Converters are callables (value) -> value | None applied last-registered
  first; None leaves the working value unchanged.

Handlers can also declare converters as class attributes whose names start
with CLI_INPUT_CONVERTERS / CLI_OUTPUT_CONVERTERS (iterables of callables).
"""
import inspect
import logging
import re
from collections.abc import Iterable
from typing import Any

from .faults import ArityMismatchError, ConversionError, ShellException, TokenConversionError

logger = logging.getLogger(__name__)

_IDENTITY_TARGETS = (str, object, Any)

# plain ASCII spellings only: no "1_000", no non-ASCII digits
_NUMBER_PATTERNS = {
    int: re.compile(r"[+-]?\d+", re.ASCII),
    float: re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?|[+-]?(NaN|Infinity)", re.ASCII),
}


def _declared(handler, prefix):
    """
    Yield the converters a handler declares under attributes starting with prefix.
    """
    for name in sorted(dir(handler)):
        if not name.startswith(prefix):
            continue
        converters = getattr(handler, name)
        if not isinstance(converters, Iterable) or isinstance(converters, (str, bytes)):
            raise TypeError(f"{type(handler).__name__}.{name} must be an iterable of converters")
        yield from converters


def _elementary(text, target):
    if target in _IDENTITY_TARGETS or (isinstance(target, type) and isinstance(text, target)):
        return text

    if target is bool:
        return text.strip().lower() == "true"

    if target in (int, float):
        if _NUMBER_PATTERNS[target].fullmatch(text.strip()):
            return target(text.strip())
        raise ConversionError(
            "cannot convert %r to %s" % (text, target.__name__),
            hint="enter a number such as %s" % ("42" if target is int else "4.2"),
        )

    if not callable(target):
        raise ConversionError("cannot convert string to %r" % (target,))

    try:
        inspect.signature(target).bind(text)
    except TypeError:
        raise ConversionError("cannot convert string to %s" % getattr(target, "__name__", repr(target))) from None
    except ValueError:
        # no introspectable signature (some builtins); try the call anyway
        pass

    try:
        return target(text)
    except Exception as error:
        raise ConversionError(
            "error instantiating %s using string %r" % (getattr(target, "__name__", repr(target)), text)
        ) from error


class InputConversion:
    """
    Convert command-line text into typed values.
    """

    def __init__(self):
        self._converters = []

    @property
    def converters(self):
        return tuple(self._converters)

    def add_converter(self, converter, /):
        if not callable(converter):
            raise TypeError("input converter must be callable")
        self._converters.append(converter)

    def remove_converter(self, converter, /):
        try:
            self._converters.remove(converter)
        except ValueError:
            return False
        return True

    def add_declared_converters(self, handler, /):
        for converter in _declared(handler, "CLI_INPUT_CONVERTERS"):
            self.add_converter(converter)

    def convert(self, text, target, /):
        """
        Convert text to target, trying custom converters before the elementary rules.

        Raises
        - ConversionError: a converter answered with a value of the wrong type,
          or no rule can produce a target from text.
        - any error a custom converter raises, unchanged.
        """
        for converter in self._converters:
            result = converter(text, target)
            if result is None:
                continue
            if isinstance(target, type) and not isinstance(result, target):
                raise ConversionError(
                    "converter %r returned %s instead of %s" % (converter, type(result).__name__, target.__name__)
                )
            return result
        return _elementary(text, target)

    def _convert_token(self, token, target):
        try:
            return self.convert(token.text, target)
        except ShellException as error:
            raise TokenConversionError(token, error.message, hint=error.hint or None) from error
        except Exception as error:
            raise TokenConversionError(token, str(error) or type(error).__name__) from error

    def convert_parameters(self, tokens, descriptor, /):
        """
        Build the argument tuple for descriptor from the tokens of a line.

        Token 0 is the command itself and is skipped. Tokens 1..arity convert
        positionally; for a variadic command every token past the fixed
        parameters converts to the element type of the last parameter and is
        collected into one trailing tuple.
        """
        tokens = list(tokens)
        params = descriptor.params
        count = len(tokens) - 1

        if not descriptor.accepts(count):
            raise ArityMismatchError(tokens[0].text if tokens else "", count)

        fixed = params[:-1] if descriptor.variadic else params
        arguments = [
            self._convert_token(token, param.value_type)
            for param, token in zip(fixed, tokens[1:])
        ]

        if descriptor.variadic:
            arguments.append(tuple(
                self._convert_token(token, params[-1].value_type)
                for token in tokens[len(params):]
            ))

        logger.debug("converted arguments of %s%s: %r", descriptor.prefix, descriptor.name, arguments)
        return tuple(arguments)


class OutputConversion:
    """
    Turn command results into displayable values (last-registered converter first).
    """

    def __init__(self):
        self._converters = []

    @property
    def converters(self):
        return tuple(self._converters)

    def add_converter(self, converter, /):
        if not callable(converter):
            raise TypeError("output converter must be callable")
        self._converters.append(converter)

    def remove_converter(self, converter, /):
        try:
            self._converters.remove(converter)
        except ValueError:
            return False
        return True

    def add_declared_converters(self, handler, /):
        for converter in _declared(handler, "CLI_OUTPUT_CONVERTERS"):
            self.add_converter(converter)

    def convert(self, value, /):
        for converter in reversed(self._converters):
            if (result := converter(value)) is not None:
                value = result
        return value


__all__ = (
    "InputConversion",
    "OutputConversion",
)
