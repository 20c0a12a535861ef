"""
Nautilus tokens: split a command line into positioned words.

Lexical rules
- Words are separated by whitespace.
- Double or single quotes group characters (whitespace included) into a word;
  the quotes themselves are not part of the word and may appear in the middle
  of one: a"b c"d is the single word 'ab cd'.
- A doubled quote stands for one literal quote, both inside and outside quotes.
- '#' starts a comment that runs to the end of the line.
- An unterminated quote is closed by the end of the line.

Every token remembers the offset of its first character in the line so that
diagnostics can point at it (see ConsoleIO.render_token_error).

Quick example
    >>> [token.text for token in tokenize('add 1 "two words" # ignored')]
    ['add', '1', 'two words']
    >>> tokenize(escape('say "hi"'))[0].text
    'say "hi"'
"""
from enum import Enum, auto


class Token:
    """
    A word of a command line and the offset where it starts.

    Tokens are immutable. Equality and hashing only consider the text: two
    tokens spelled the same way at different offsets compare equal.
    """
    __slots__ = ("_index", "_text")

    def __init__(self, index, text, /):
        if not isinstance(index, int):
            raise TypeError("token index must be an integer")
        if not isinstance(text, str):
            raise TypeError("token text must be a string")
        object.__setattr__(self, "_index", index)
        object.__setattr__(self, "_text", text)

    @property
    def index(self):
        return self._index

    @property
    def text(self):
        return self._text

    def __setattr__(self, name, value, /):
        raise AttributeError("token is read-only")

    def __eq__(self, other, /):
        if not isinstance(other, Token):
            return NotImplemented
        return self._text == other._text

    def __hash__(self):
        return hash(self._text)

    def __repr__(self):
        return f"token(index={self._index!r}, text={self._text!r})"

    def __str__(self):
        return f"{self._text}:{self._index}"


class _State(Enum):
    WHITESPACE = auto()
    WORD = auto()
    DOUBLE_QUOTED = auto()
    SINGLE_QUOTED = auto()
    COMMENT = auto()


_QUOTES = {
    '"': _State.DOUBLE_QUOTED,
    "'": _State.SINGLE_QUOTED,
}

_CLOSERS = {state: quote for quote, state in _QUOTES.items()}


def _is_word_char(char):
    return char.isalnum() or char == "_"


def tokenize(line, /):
    """
    Split a line into tokens with a small state machine.

    States
    - WHITESPACE (initial): skip blanks; the first other character opens a token.
    - WORD: collect characters until whitespace or '#'.
    - DOUBLE_QUOTED / SINGLE_QUOTED: collect everything up to the matching quote.
    - COMMENT: swallow the rest of the line.

    Returns
    - list[Token]; an empty list for None or blank input.
    """
    if line is None:
        return []
    if not isinstance(line, str):
        raise TypeError("tokenize() argument must be a string")

    tokens = []
    state = _State.WHITESPACE
    start = -1
    chars = []
    index = 0
    length = len(line)

    def doubled(quote):
        return index + 1 < length and line[index + 1] == quote

    while index < length:
        char = line[index]

        if state is _State.WHITESPACE:
            if not char.isspace():
                start = index
                if char in _QUOTES:
                    state = _QUOTES[char]
                elif char == "#":
                    state = _State.COMMENT
                else:
                    # word characters and any other symbol open a word alike
                    state = _State.WORD
                    chars.append(char)

        elif state is _State.WORD:
            if char.isspace():
                tokens.append(Token(start, "".join(chars)))
                chars.clear()
                state = _State.WHITESPACE
            elif _is_word_char(char):
                chars.append(char)
            elif char in _QUOTES:
                if doubled(char):
                    chars.append(char)
                    index += 1
                else:
                    state = _QUOTES[char]
            elif char == "#":
                tokens.append(Token(start, "".join(chars)))
                chars.clear()
                state = _State.COMMENT
            else:
                chars.append(char)

        elif state is _State.COMMENT:
            pass

        else:
            quote = _CLOSERS[state]
            if char == quote:
                if doubled(char):
                    chars.append(char)
                    index += 1
                else:
                    state = _State.WORD
            else:
                chars.append(char)

        index += 1

    if state in (_State.WORD, _State.DOUBLE_QUOTED, _State.SINGLE_QUOTED):
        tokens.append(Token(start, "".join(chars)))

    return tokens


def escape(text, /):
    """
    Quote a string so that it tokenizes back to itself as one token.

    The text is wrapped in double quotes and every embedded double quote is
    doubled: tokenize(escape(text)) == [Token(0, text)] for any text.
    """
    if not isinstance(text, str):
        raise TypeError("escape() argument must be a string")
    return '"%s"' % text.replace('"', '""')


__all__ = (
    "Token",
    "tokenize",
    "escape",
)
