"""
Nautilus command registry: descriptors, invocation outcomes and the command table.

What this module provides
- ParamSpec: name, description, position and value type of one command parameter.
- CommandDescriptor: a named command bound to its invoker (a plain callable).
  • identity: prefix + name, optional abbreviation.
  • shape: ordered parameter specs; arity == len(params); a variadic command
    takes its trailing parameter as a tuple of any length.
  • invoke(arguments) never raises for handler errors: it returns an Outcome.
- Returned / InvocationFailure: the two outcomes of an invocation. A handler
  that raises produces an InvocationFailure whose cause is displayed exactly
  like a returned value.
- CommandTable: append-only registry.
  • register(...) names the command (explicit name or naming strategy) and picks
    the first generated abbreviation that does not collide at the same arity.
  • resolve(discriminator, count) narrows candidates by name, then by arity.

Resolution
1. collect commands whose prefixed name or prefixed abbreviation equals the discriminator;
2. keep those whose arity equals the argument count, or which are variadic with
   arity <= count;
3. none collected → CommandNotFoundError; none kept → ArityMismatchError;
   more than one kept → AmbiguousCommandError (only explicit names can collide).

Quick example
    >>> table = CommandTable(DashJoinedNamer(True))
    >>> _ = table.register("cliAdd",lambda a, b: a + b, [ParamSpec("a", 0, int), ParamSpec("b", 1, int)])
    >>> table.resolve("a", 2).name
    'add'
"""
import functools
import logging
import operator
import re

from .faults import AmbiguousCommandError, ArityMismatchError, CommandNotFoundError
from .naming import DashJoinedNamer
from .utils import Unset, coalesce, mirror, rename

logger = logging.getLogger(__name__)


def _typename(x):
    return getattr(x, "__name__", None) or repr(x)


class SpecType(type):
    """
    Metaclass giving registry types a stable, readable representation.

    Responsibilities
    - derive __typename__ from the class name (camel-case split with hyphens).
    - expose every name listed in __introspectable__ as a read-only property
      mirroring the private backing field "_{name}".
    - provide __repr__/__rich_repr__ built from __displayable__ (or
      __introspectable__ when no narrower list is given).
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            fields = ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            return f"{type(self).__typename__}({fields})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class ParamSpec(metaclass=SpecType):
    """
    Specification of one command parameter.

    Parameters
    - name: str, label shown by help (non-empty).
    - position: int, 0-based index in the command's parameter list.
    - value_type: target of the input conversion (a class, typing.Any, ...).
    - description: str, one sentence shown by help (defaults to "").
    - variadic: bool (keyword-only), True for a trailing parameter that collects
      any number of values of value_type into a tuple.
    """
    __introspectable__ = (
        "name",
        "position",
        "value_type",
        "description",
        "variadic",
    )

    def __init__(self, name, position, value_type=str, description="", /, *, variadic=False):
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} 'name' must be a string")
        elif not (name := name.strip()):
            raise ValueError(f"{type(self).__typename__} 'name' cannot be empty")
        if not isinstance(position, int) or position < 0:
            raise TypeError(f"{type(self).__typename__} 'position' must be a non-negative integer")
        if not isinstance(description, str):
            raise TypeError(f"{type(self).__typename__} 'description' must be a string")
        self._name = name
        self._position = position
        self._value_type = value_type
        self._description = description.strip()
        self._variadic = bool(variadic)

    def __str__(self):
        return "%s%s:%s" % ("*" if self._variadic else "", self._name, _typename(self._value_type))


class Outcome:
    """
    Result of invoking a command: either Returned or InvocationFailure.

    displayable is what the shell renders in both cases: the returned value, or
    the error raised by the handler.
    """
    __slots__ = ()

    @property
    def displayable(self):
        raise NotImplementedError

    def __init_subclass__(cls, **options):
        if cls.__module__ != __name__:
            raise TypeError(f"type {cls.__name__!r} is not an acceptable base type")
        super().__init_subclass__(**options)


class Returned(Outcome):
    __slots__ = ("value",)

    def __init__(self, value):
        self.value = value

    @property
    def displayable(self):
        return self.value

    def __repr__(self):
        return f"returned({self.value!r})"


class InvocationFailure(Outcome):
    __slots__ = ("cause",)

    def __init__(self, cause):
        if not isinstance(cause, BaseException):
            raise TypeError("invocation-failure cause must be an exception")
        self.cause = cause

    @property
    def displayable(self):
        return self.cause

    def __repr__(self):
        return f"invocation-failure({self.cause!r})"


class CommandDescriptor(metaclass=SpecType):
    """
    A registered command.

    Identity
    - prefix + name is the canonical spelling; prefix + abbreviation the short one.
    - abbreviation, description and header may each be assigned once after
      construction; every other field is read-only.

    Shape
    - params: tuple[ParamSpec, ...] in positional order.
    - arity: len(params).
    - variadic: True when the last parameter collects the trailing arguments.

    Invocation
    - invoke(arguments) calls the invoker with the converted arguments (the
      variadic tuple, if any, is spread) and wraps the result in an Outcome.
    """
    __introspectable__ = (
        "prefix",
        "name",
        "identifier",
        "params",
        "returns",
        "invoker",
    )

    __displayable__ = (
        "prefix",
        "name",
        "abbreviation",
        "arity",
        "variadic",
        "description",
    )

    def __init__(self, invoker, params=(), /, prefix="", name=Unset, *, identifier=Unset, returns=Unset):
        if not callable(invoker):
            raise TypeError(f"{type(self).__typename__} 'invoker' must be callable")
        if not isinstance(prefix, str):
            raise TypeError(f"{type(self).__typename__} 'prefix' must be a string")

        params = tuple(params)
        for position, param in enumerate(params):
            if not isinstance(param, ParamSpec):
                raise TypeError(f"{type(self).__typename__} 'params' must be an iterable of param-spec")
            if param.position != position:
                raise ValueError(f"{type(self).__typename__} parameter {param.name!r} is not at position {param.position}")
            if param.variadic and position != len(params) - 1:
                raise ValueError(f"{type(self).__typename__} variadic parameter {param.name!r} must be the last one")

        identifier = coalesce(identifier, getattr(invoker, "__name__", "<command>"))
        name = coalesce(name, identifier)
        if not isinstance(name, str) or not name:
            raise ValueError(f"{type(self).__typename__} 'name' must be a non-empty string")

        self._invoker = invoker
        self._params = params
        self._prefix = prefix
        self._name = name
        self._identifier = identifier
        self._returns = returns
        self._abbreviation = None
        if returns is Unset:
            returned = "Any"
        elif returns is None:
            returned = "None"
        else:
            returned = _typename(returns)
        self._description = "%s(%s) : %s" % (identifier, ", ".join(map(str, params)), returned)
        self._header = None
        self._assigned = set()

    def _assign(self, field, value):
        if field in self._assigned:
            raise TypeError(f"{type(self).__typename__} {field!r} cannot be overridden")
        if value is not None and not isinstance(value, str):
            raise TypeError(f"{type(self).__typename__} {field!r} must be a string")
        setattr(self, "_" + field, value)
        self._assigned.add(field)

    @property
    def abbreviation(self):
        return self._abbreviation

    @abbreviation.setter
    def abbreviation(self, value):
        self._assign("abbreviation", value)

    @property
    def description(self):
        return self._description

    @description.setter
    def description(self, value):
        self._assign("description", value)

    @property
    def header(self):
        return self._header

    @header.setter
    def header(self, value):
        self._assign("header", value)

    @property
    def arity(self):
        return len(self._params)

    @property
    def variadic(self):
        return bool(self._params) and self._params[-1].variadic

    def denoted_by(self, discriminator, /):
        """
        Whether the discriminator spells this command (name or abbreviation, prefixed).
        """
        if discriminator == self._prefix + self._name:
            return True
        return self._abbreviation is not None and discriminator == self._prefix + self._abbreviation

    def accepts(self, count, /):
        """
        Whether this command can take count arguments.
        """
        return count == self.arity or (self.variadic and self.arity <= count)

    def invoke(self, arguments=(), /):
        arguments = tuple(arguments)
        if self.variadic:
            *arguments, tail = arguments
            arguments = (*arguments, *tail)
        try:
            return Returned(self._invoker(*arguments))
        except Exception as error:
            logger.debug("command %s%s raised %r", self._prefix, self._name, error)
            return InvocationFailure(error)

    def __str__(self):
        return "\t".join((
            self._prefix + self._name,
            self._prefix + self._abbreviation if self._abbreviation is not None else "",
            "%d%s" % (self.arity, "+" if self.variadic else ""),
            self._description,
        ))


class CommandTable:
    """
    Append-only registry of commands.

    Parameters
    - namer: naming strategy used for commands registered without an explicit
      name (defaults to DashJoinedNamer(True)).
    """

    def __init__(self, namer=Unset, /):
        namer = coalesce(namer, DashJoinedNamer(True))
        if not hasattr(namer, "name_command") or not callable(namer.name_command):
            raise TypeError("command-table 'namer' must implement name_command()")
        self._namer = namer
        self._commands = []

    @property
    def namer(self):
        return self._namer

    @property
    def commands(self):
        return tuple(self._commands)

    def __len__(self):
        return len(self._commands)

    def __iter__(self):
        return iter(tuple(self._commands))

    def register(
            self,
            identifier,
            invoker,
            params=(),
            /,
            *,
            prefix="",
            name=Unset,
            abbrev=Unset,
            description=Unset,
            header=Unset,
            returns=Unset,
    ):
        """
        Add a command and return its descriptor.

        Naming
        - name given: used as-is, no collision check and no generated abbreviation.
        - otherwise: the namer derives the name and abbreviation candidates; the
          first candidate whose (prefix + candidate, arity) is not taken wins, and
          when every candidate collides the command has no abbreviation.
        - abbrev given: replaces the generated abbreviation, without collision check.

        Empty strings count as not given for name, abbrev, description and header.
        """
        params = tuple(params)
        generated = None

        if name:
            chosen = name
        else:
            naming = self._namer.name_command(identifier)
            chosen = naming.command_name
            for candidate in naming.abbreviations:
                if not self.exists(prefix + candidate, len(params)):
                    generated = candidate
                    break

        descriptor = CommandDescriptor(
            invoker,
            params,
            prefix,
            chosen,
            identifier=identifier,
            returns=returns,
        )
        descriptor.abbreviation = abbrev or generated
        if description:
            descriptor.description = description
        if header:
            descriptor.header = header

        self._commands.append(descriptor)
        logger.debug("registered command %s%s (abbreviation %r, arity %d%s)",
                     prefix, chosen, descriptor.abbreviation, descriptor.arity,
                     "+" if descriptor.variadic else "")
        return descriptor

    def exists(self, name, arity, /):
        """
        Whether a command denoted by name already takes exactly arity parameters.
        """
        return any(command.denoted_by(name) and command.arity == arity for command in self._commands)

    def commands_by_name(self, discriminator, /):
        return [command for command in self._commands if command.denoted_by(discriminator)]

    def resolve(self, discriminator, count, /):
        """
        Find the single command denoted by discriminator that accepts count arguments.

        Raises
        - CommandNotFoundError: nothing is denoted by discriminator.
        - ArityMismatchError: something is, but none accepts count arguments.
        - AmbiguousCommandError: several commands accept count arguments.
        """
        collected = self.commands_by_name(discriminator)
        reduced = [command for command in collected if command.accepts(count)]

        if not collected:
            raise CommandNotFoundError(discriminator)
        if not reduced:
            raise ArityMismatchError(discriminator, count)
        if len(reduced) > 1:
            raise AmbiguousCommandError(discriminator, count, reduced)

        logger.debug("resolved %r with %d arguments to %s%s", discriminator, count, reduced[0].prefix, reduced[0].name)
        return reduced[0]


__all__ = (
    "ParamSpec",
    "CommandDescriptor",
    "Outcome",
    "Returned",
    "InvocationFailure",
    "CommandTable",
)

# Not part of the public API.
del SpecType
