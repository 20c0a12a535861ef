"""
Nautilus declarations: mark handler methods as commands and describe them.

Declaring
- @command / @command(name=..., abbrev=..., description=..., header=...)
  marks a function or method as a shell command. Every field is optional; an
  unnamed command is named by the shell's naming strategy.
- param(name, description) attaches a user-facing name and description to a
  parameter through typing.Annotated:

      @command(description="adds two numbers")
      def add(self, a: Annotated[int, param("a", "first term")], b: int) -> int:
          return a + b

Describing
- describe(function) turns a callable into a CommandDeclaration: the identifier,
  the invoker, the ParamSpec list derived from its signature and the declared
  metadata. Parameter annotations become conversion targets (str when missing);
  *args makes the command variadic with the annotation as element type.
- declared_commands(handler) yields the declarations of every method of the
  handler's class marked with @command, bound to the handler, in name order.

The command table only consumes CommandDeclaration tuples; how they were
obtained is up to the caller (see Shell.add_command for the explicit route).
"""
import inspect
import typing
from collections import namedtuple
from types import MappingProxyType

from .registry import ParamSpec
from .utils import Unset, coalesce, rename

CommandDeclaration = namedtuple("CommandDeclaration", (
    "identifier",
    "invoker",
    "params",
    "name",
    "abbrev",
    "description",
    "header",
    "returns",
))


class param:
    """
    Annotated metadata naming and describing a command parameter.
    """
    __slots__ = ("name", "description")

    def __init__(self, name, description="", /):
        if not isinstance(name, str) or not name.strip():
            raise ValueError("param() name must be a non-empty string")
        if not isinstance(description, str):
            raise TypeError("param() description must be a string")
        self.name = name.strip()
        self.description = description.strip()

    def __repr__(self):
        return f"param({self.name!r}, {self.description!r})"


def _check(field, value):
    if value is not Unset and not isinstance(value, str):
        raise TypeError(f"@command() {field!r} must be a string")
    return value


def command(source=Unset, /, *, name=Unset, abbrev=Unset, description=Unset, header=Unset):
    """
    Mark a function as a command, directly (@command) or with metadata (@command(...)).

    Parameters
    - name: explicit command name (no naming strategy, no generated abbreviation).
    - abbrev: explicit abbreviation.
    - description: one-line description shown by help.
    - header: text printed before the command output; may reference the
      converted arguments with str.format fields ({0}, {1}, ...).

    Returns
    - the function itself, tagged with a read-only __command__ mapping.
    """
    metadata = MappingProxyType({
        "name": _check("name", name),
        "abbrev": _check("abbrev", abbrev),
        "description": _check("description", description),
        "header": _check("header", header),
    })

    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        source.__command__ = metadata
        return source

    return wrapper(source) if source is not Unset else wrapper


def _unwrap(annotation):
    """
    Split an annotation into (conversion target, param metadata or None).
    """
    if annotation is inspect.Parameter.empty:
        return str, None
    if typing.get_origin(annotation) is typing.Annotated:
        target, *extras = typing.get_args(annotation)
        return target, next((extra for extra in extras if isinstance(extra, param)), None)
    return annotation, None


def describe(function, /, identifier=Unset, *, name=Unset, abbrev=Unset, description=Unset, header=Unset):
    """
    Build the CommandDeclaration of a callable from its signature.

    Rules
    - positional parameters map to ParamSpecs in order; *args becomes the
      trailing variadic parameter.
    - keyword-only parameters must have a default (they are never filled by the
      shell); **kwargs is ignored.
    - metadata given here overrides the one attached by @command.

    Raises
    - TypeError: not callable, or a keyword-only parameter without default.
    """
    if not callable(function):
        raise TypeError("describe() argument must be callable")

    declared = getattr(function, "__command__", {})
    identifier = coalesce(identifier, getattr(function, "__name__", Unset))
    if not isinstance(identifier, str):
        raise TypeError("describe() cannot infer an identifier, pass one explicitly")

    try:
        signature = inspect.signature(function, eval_str=True)
    except (NameError, ValueError) as error:
        raise TypeError(f"describe() cannot inspect {identifier!r}: {error}") from None

    params = []
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.KEYWORD_ONLY:
            if parameter.default is inspect.Parameter.empty:
                raise TypeError(f"command {identifier!r} keyword-only parameter {parameter.name!r} must have a default")
            continue
        if parameter.kind is inspect.Parameter.VAR_KEYWORD:
            continue

        target, metadata = _unwrap(parameter.annotation)
        params.append(ParamSpec(
            metadata.name if metadata else parameter.name,
            len(params),
            target,
            metadata.description if metadata else "",
            variadic=parameter.kind is inspect.Parameter.VAR_POSITIONAL,
        ))

    returns = signature.return_annotation
    if returns is inspect.Signature.empty:
        returns = Unset

    return CommandDeclaration(
        identifier,
        function,
        tuple(params),
        coalesce(name, declared.get("name", Unset)),
        coalesce(abbrev, declared.get("abbrev", Unset)),
        coalesce(description, declared.get("description", Unset)),
        coalesce(header, declared.get("header", Unset)),
        returns,
    )


def declared_commands(handler, /):
    """
    Yield the CommandDeclaration of every @command method of handler's class.
    """
    for identifier, member in inspect.getmembers(type(handler)):
        if not callable(member) or not hasattr(member, "__command__"):
            continue
        yield describe(getattr(handler, identifier), identifier)


__all__ = (
    "CommandDeclaration",
    "param",
    "command",
    "describe",
    "declared_commands",
)
