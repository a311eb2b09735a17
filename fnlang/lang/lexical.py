"""Lexical analysis for the fn language: turns source text into a flat list of Tokens.

Tokens are recognised by trying each rule of GRAMMAR, in order, at the current position. Order matters because
several rules can match overlapping prefixes:

```
<comment>        ::= "#" <char>*                   ; consumed, never emitted
<reserved>       ::= "use" | "import" | "if" | "unless" | "else"
<infix_operator> ::= "." | "=" | "|" | "*" | "/" | "+" | "-" | "eq" | "and" | "or"
<string>         ::= '"' <char>* '"'
<number>         ::= <digit>+
<boolean>        ::= "true" | "false"
<identifier>     ::= anything else that is not punctuation, whitespace or a leading digit
```

Reserved words and word operators must be tried before <identifier>, and only match as whole words: "user" and
"order" are identifiers.
"""

import re
from dataclasses import dataclass
from enum import Enum

from fnlang.lang.error import LexError


class TokenKind(Enum):
    COMMENT = "comment"
    BRACKET_OPEN = "bracket_open"
    BRACKET_CLOSE = "bracket_close"
    COMMA = "comma"
    END_STATEMENT = "end_statement"
    USE = "use"
    IMPORT = "import"
    IF = "if"
    UNLESS = "unless"
    ELSE = "else"
    INFIX_OPERATOR = "infix_operator"
    BLOCK_OPEN = "block_open"
    BLOCK_CLOSE = "block_close"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    IDENTIFIER = "identifier"
    SPACE = "space"


IDENTIFIER_CHAR = r"[^#(),;+\-*/.=|>{}\"\s]"
_WORD_END = f"(?!{IDENTIFIER_CHAR})"  # keyword must not run on into an identifier


def _word(word):
    return re.compile(f"({word}){_WORD_END}")


GRAMMAR = (
    (TokenKind.COMMENT, re.compile(r"#([^\n]*)")),

    (TokenKind.BRACKET_OPEN, re.compile(r"\(")),
    (TokenKind.BRACKET_CLOSE, re.compile(r"\)")),

    (TokenKind.COMMA, re.compile(r",")),
    (TokenKind.END_STATEMENT, re.compile(r";")),

    # reserved words
    (TokenKind.USE, _word("use")),
    (TokenKind.IMPORT, _word("import")),
    (TokenKind.IF, _word("if")),
    (TokenKind.UNLESS, _word("unless")),
    (TokenKind.ELSE, _word("else")),

    # also matches word operators, so must come before identifiers
    (TokenKind.INFIX_OPERATOR, re.compile(f"([+\\-*/.=|]|(?:eq|or|and){_WORD_END})")),

    (TokenKind.BLOCK_OPEN, re.compile(r"\{")),
    (TokenKind.BLOCK_CLOSE, re.compile(r"\}")),

    # value literals
    (TokenKind.STRING, re.compile(r"\"([^\"]*)\"")),
    (TokenKind.NUMBER, re.compile(r"([0-9]+)")),
    (TokenKind.BOOLEAN, _word("true|false")),

    # should be below all other value tokens, saves excluding every reserved word in this regex
    (TokenKind.IDENTIFIER, re.compile(f"((?![0-9]){IDENTIFIER_CHAR}+)")),

    (TokenKind.SPACE, re.compile(r"\s+")),
)

SKIPPED = frozenset((TokenKind.SPACE, TokenKind.COMMENT))  # consumed, but never emitted


@dataclass(frozen=True)
class Token:
    """A single lexed token. text is the rule's captured group, or None for punctuation."""
    kind: TokenKind
    text: str = None

    def __str__(self):
        text_display = f"[{self.text}]" if self.text is not None else ""
        return f"{self.kind.value}{text_display}"


def tokenize(text):
    """Returns the list of Tokens in text. Raises a LexError, carrying the offending remainder, if no rule matches."""
    tokens = []
    pos = 0

    while pos < len(text):
        for kind, pattern in GRAMMAR:
            match = pattern.match(text, pos)
            if match and match.end() > pos:
                break
        else:
            remainder = text[pos:]
            raise LexError("failed to tokenize '{}'", remainder.splitlines()[0] if remainder.strip() else remainder)

        if kind not in SKIPPED:
            tokens.append(Token(kind, match.group(1) if pattern.groups else None))
        pos = match.end()

    return tokens
