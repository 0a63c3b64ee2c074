"""
SUBLEQ Assembly Tokenizer
=========================

This module splits assembly source into whitespace-delimited tokens.
Unlike a conventional lexer there are no token categories: a token is
just the text between separators, plus where it was found. Meaning is
decided by the section parser from position and context.

Lexical Rules
-------------
- Space and tab separate tokens.
- CR, LF and CRLF each advance one line.
- `/` starts a comment running to the end of the line. A token being
  accumulated when `/` is met is complete before the comment is skipped,
  so `loop/comment` yields the token `loop`.
- End of input yields an empty token (`text == ""`).

Line Adjacency
--------------
Each token records the physical line on which it was completed. The
parser compares the lines of neighbouring tokens to decide variable-arity
constructs: `.iarray` values, the optional third instruction field and
pseudo-instruction operands all end at the first token on a new line.

Example
-------
>>> from subleq_asm.assembler.tokenizer import Tokenizer
>>> for token in Tokenizer("a b  / comment\\nc").tokenize():
...     print(token)
Token('a', 1:1)
Token('b', 1:3)
Token('c', 2:1)
"""

from collections import deque
from dataclasses import dataclass
from typing import Iterable, Iterator

from subleq_asm.errors import SourceLocation


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single whitespace-delimited lexeme.

    Attributes:
        text: The token text ("" marks end of input)
        line: Line on which the token was completed (1-indexed)
        column: Column of the token's first character (1-indexed)
        filename: Name of the source file
        synthetic: True for tokens injected by the pseudo-instruction
                   expander rather than read from the source
    """
    text: str
    line: int
    column: int
    filename: str = "<input>"
    synthetic: bool = False

    def __repr__(self) -> str:
        if not self.text:
            return f"Token(EOF, {self.line}:{self.column})"
        return f"Token({self.text!r}, {self.line}:{self.column})"

    @property
    def is_eof(self) -> bool:
        return not self.text

    @property
    def is_label(self) -> bool:
        """True for label definitions such as `loop:`."""
        return len(self.text) > 1 and self.text.endswith(":")

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)


# =============================================================================
# Tokenizer Implementation
# =============================================================================

class Tokenizer:
    """
    Produces tokens from source text one at a time.

    Usage:
        tokenizer = Tokenizer(source_text, filename)
        token = tokenizer.next_token()
        while not token.is_eof:
            ...
            token = tokenizer.next_token()
    """

    SEPARATORS = " \t"
    COMMENT = "/"

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename

        self._pos = 0
        self._line = 1
        self._column = 1

    def tokenize(self) -> Iterator[Token]:
        """Yield every token up to, but not including, the EOF token."""
        while True:
            token = self.next_token()
            if token.is_eof:
                return
            yield token

    def next_token(self) -> Token:
        """
        Read the next token.

        Returns:
            The next Token, or an empty-text Token at end of input
        """
        chars: list[str] = []
        start_column = self._column

        while self._pos < len(self.source):
            char = self.source[self._pos]

            if char == self.COMMENT:
                if chars:
                    return self._make_token(chars, start_column)
                self._skip_comment()
                continue

            if char in "\r\n":
                if chars:
                    # The token ends on this line, before the line advance
                    token = self._make_token(chars, start_column)
                    self._consume_line_break()
                    return token
                self._consume_line_break()
                continue

            if char in self.SEPARATORS:
                self._advance()
                if chars:
                    return self._make_token(chars, start_column)
                continue

            if not chars:
                start_column = self._column
            chars.append(char)
            self._advance()

        if chars:
            return self._make_token(chars, start_column)
        return Token("", self._line, self._column, self.filename)

    # =========================================================================
    # Character Handling
    # =========================================================================

    def _advance(self) -> None:
        self._pos += 1
        self._column += 1

    def _consume_line_break(self) -> None:
        """Consume CR, LF or CRLF as one line advance."""
        if self.source[self._pos] == "\r" and self.source[self._pos + 1:self._pos + 2] == "\n":
            self._pos += 1
        self._pos += 1
        self._line += 1
        self._column = 1

    def _skip_comment(self) -> None:
        """Skip from `/` up to (not including) the line break."""
        while self._pos < len(self.source) and self.source[self._pos] not in "\r\n":
            self._advance()

    def _make_token(self, chars: list[str], start_column: int) -> Token:
        return Token("".join(chars), self._line, start_column, self.filename)


# =============================================================================
# Token Stream with Push-back
# =============================================================================

class TokenStream:
    """
    Token source consulted by the parser.

    Pushed-back tokens sit in a FIFO that is drained before the raw
    tokenizer is read again. The pseudo-instruction expander uses this to
    inject primitive instructions that the parser then consumes exactly as
    if they had been typed in the source.
    """

    def __init__(self, tokenizer: Tokenizer):
        self._tokenizer = tokenizer
        self._pending: deque[Token] = deque()

    @property
    def filename(self) -> str:
        return self._tokenizer.filename

    def next(self) -> Token:
        """Return the next token, pushed-back tokens first."""
        if self._pending:
            return self._pending.popleft()
        return self._tokenizer.next_token()

    def peek(self) -> Token:
        """Look at the next token without consuming it."""
        if not self._pending:
            self._pending.append(self._tokenizer.next_token())
        return self._pending[0]

    def push(self, tokens: Iterable[Token]) -> None:
        """
        Re-insert tokens at the front of the stream.

        The tokens come out in the order given, ahead of anything that
        was already pending.
        """
        self._pending.extendleft(reversed(list(tokens)))
