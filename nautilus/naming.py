"""
Nautilus naming: derive command names and abbreviations from identifiers.

A handler method such as ``cliListUsers`` or ``list_users`` becomes the command
``list-users``; the namer also proposes abbreviations (``lu`` then ``lius``)
which the command table tries in order, keeping the first one that does not
collide with an existing command of the same arity.

Quick example
    >>> name_command("cliTestMethod1")
    naming-result(command_name='test-method-1', abbreviations=('tm1', 'teme1'))
"""
from collections import namedtuple

_COMMON_PREFIXES = ("cmd", "cli")

# exit has a reserved meaning in the command loop and is never abbreviated
_RESERVED = ("exit",)


class NamingResult(namedtuple("NamingResult", ("command_name", "abbreviations"))):
    __slots__ = ()

    def __repr__(self):
        return f"naming-result(command_name={self.command_name!r}, abbreviations={self.abbreviations!r})"


def split_identifier(identifier, /):
    """
    Split a camelCase identifier into its words.

    rules (scanning left to right)
    - a run of lowercase letters is one word: 'list'.
    - an uppercase letter followed by lowercase ones is one word: 'List'.
    - consecutive uppercase letters form an acronym, which stops before the
      uppercase letter that opens the next capitalized word: 'URLPath' → 'URL', 'Path'.
    - any other character (digit, underscore, symbol) is a word on its own.

    examples
    - 'cliTestMethod1' → ['cli', 'Test', 'Method', '1']
    - 'getURLFor'      → ['get', 'URL', 'For']
    - 'run_script'     → ['run', '_', 'script']
    """
    if not isinstance(identifier, str):
        raise TypeError("split_identifier() argument must be a string")

    words = []
    start = 0
    length = len(identifier)

    while start < length:
        char = identifier[start]
        if char.islower():
            end = start
            while end < length and identifier[end].islower():
                end += 1
        elif char.isupper():
            if length - start == 1:
                end = start + 1
            elif identifier[start + 1].islower():
                end = start + 1
                while end < length and identifier[end].islower():
                    end += 1
            else:
                end = start + 1
                while end < length and identifier[end].isupper() and (
                        length - end == 1 or identifier[end + 1].isupper()
                ):
                    end += 1
        else:
            end = start + 1
        words.append(identifier[start:end])
        start = end

    return words


def fix_case(word, /):
    """
    Lowercase a capitalized word but keep acronyms: 'Str' → 'str', 'URL' → 'URL'.
    """
    if word and word[0].isupper() and (len(word) == 1 or word[1].islower()):
        return word.lower()
    return word


def join_words(words, /, fix=True, separator="-"):
    """
    Join words with a separator, fixing their case first when requested.
    """
    return separator.join(map(fix_case, words) if fix else words)


class DashJoinedNamer:
    """
    Default naming strategy: dash-joined, case-fixed words of the identifier.

    Parameters
    - remove_common_prefix: bool
      drop a leading 'cmd'/'cli' word (cliAddUser → add-user) as long as at
      least one word remains.

    Underscores separating snake_case words are not part of the name.
    """

    def __init__(self, remove_common_prefix=True, /):
        self._remove_common_prefix = bool(remove_common_prefix)

    @property
    def remove_common_prefix(self):
        return self._remove_common_prefix

    def name_command(self, identifier, /):
        words = [word for word in split_identifier(identifier) if word != "_"]
        if not words:
            raise ValueError(f"cannot derive a command name from {identifier!r}")

        if self._remove_common_prefix and len(words) > 1 and words[0].lower() in _COMMON_PREFIXES:
            del words[0]

        return NamingResult(join_words(words, True, "-"), self._abbreviate(words))

    @staticmethod
    def _abbreviate(words):
        if len(words) == 1 and words[0] in _RESERVED:
            return ()

        initials = "".join(word[0] for word in words).lower()
        pairs = "".join(word[:2] for word in words).lower()

        if pairs:
            return initials, pairs
        return (initials,)

    def __repr__(self):
        return f"dash-joined-namer(remove_common_prefix={self._remove_common_prefix!r})"


def name_command(identifier, /, remove_common_prefix=True):
    """
    Shortcut for DashJoinedNamer(remove_common_prefix).name_command(identifier).
    """
    return DashJoinedNamer(remove_common_prefix).name_command(identifier)


__all__ = (
    "NamingResult",
    "DashJoinedNamer",
    "split_identifier",
    "fix_case",
    "join_words",
    "name_command",
)
