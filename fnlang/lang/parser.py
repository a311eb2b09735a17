"""Recursive-descent parser for the fn language. Turns a token list (see lexical.py) into a tuple of expression-tree
nodes (see grammar.py).

Grammar can be loosely defined as follows:

```
<program>     ::= <primary>*
<primary>     ::= (<value> | <use_stmt> | <import_stmt>) [";"]
<value>       ::= <atom> (<infix_operator> <atom>)*       ; grouped by precedence climbing, see grammar.PRECEDENCE
<atom>        ::= <identifier> ["(" <args> ")"]           ; a call if "(" follows directly
              | <number> | <string> | <boolean>
              | "(" <value> ")"                           ; grouping
              | "(" <params> ")" "{" <primary>* "}"       ; function literal
              | "{" <primary>* "}"                        ; block
              | ("if" | "unless") <value> <block> ["else" (<block> | <conditional>)]
<use_stmt>    ::= "use" <identifier>
<import_stmt> ::= "import" <identifier>
```

Grouping and function literals both start with "(": the parser looks ahead to the matching ")" and reads a function
literal only if "{" follows it.
"""

from fnlang.lang.error import ParseError
from fnlang.lang.grammar import (
    Block, BooleanLiteral, Branch, Call, Conditional, FunctionLiteral, Identifier, Import, NumberLiteral, RANKS,
    StringLiteral, Use
)
from fnlang.lang.lexical import TokenKind


def parse(tokens):
    """Returns the tuple of top-level nodes in tokens. Raises a ParseError on any grammar violation."""
    return Parser(tokens).parse()


class Parser:
    """Single-use parser over a list of tokens. The whole token list must be consumed."""

    def __init__(self, tokens):
        self.tokens = list(tokens)
        self.pos = 0

    @property
    def current_token(self):
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def peek_token(self, ahead=1):
        idx = self.pos + ahead
        return self.tokens[idx] if idx < len(self.tokens) else None

    def at(self, *kinds):
        """Whether or not the current token is one of kinds."""
        return self.current_token is not None and self.current_token.kind in kinds

    def shift_token(self):
        token = self.current_token
        if token is None:
            raise ParseError("unexpected end of input")
        self.pos += 1
        return token

    def expect(self, kind, context):
        """Shifts and returns the current token, which must be of the given kind."""
        if not self.at(kind):
            found = self.current_token if self.current_token is not None else "end of input"
            raise ParseError("expected {} in {}, got {}", (kind.value, context, found))
        return self.shift_token()

    def parse(self):
        primaries = []
        while self.current_token is not None:
            primaries.append(self.parse_primary())
        return tuple(primaries)

    def parse_primary(self):
        if self.at(TokenKind.USE):
            self.shift_token()  # eat "use"
            expr = Use(self.expect(TokenKind.IDENTIFIER, "use statement").text)
        elif self.at(TokenKind.IMPORT):
            self.shift_token()  # eat "import"
            expr = Import(self.expect(TokenKind.IDENTIFIER, "import statement").text)
        else:
            expr = self.parse_value()

        if self.at(TokenKind.END_STATEMENT):
            self.shift_token()

        return expr

    def parse_value(self, in_condition=False):
        lhs = self.parse_atom(in_condition)
        return self.parse_infix(lhs, 0, in_condition)

    def parse_infix(self, lhs, min_rank, in_condition=False):
        """Precedence climbing: folds operators of rank >= min_rank into lhs. A following operator that binds tighter
        than the one just consumed claims the right operand first.
        """
        while self._infix_rank() is not None and self._infix_rank() >= min_rank:
            op = self.shift_token().text
            rank = RANKS[op]
            rhs = self.parse_atom(in_condition)

            while self._infix_rank() is not None and self._infix_rank() > rank:
                rhs = self.parse_infix(rhs, rank + 1, in_condition)

            lhs = Call(Identifier(op), (lhs, rhs))
        return lhs

    def _infix_rank(self):
        if not self.at(TokenKind.INFIX_OPERATOR):
            return None
        return RANKS[self.current_token.text]

    def parse_atom(self, in_condition=False):
        token = self.current_token
        if token is None:
            raise ParseError("unexpected end of input, expected a value")

        if token.kind is TokenKind.IDENTIFIER:
            if self.peek_token() is not None and self.peek_token().kind is TokenKind.BRACKET_OPEN:
                return self.parse_call()
            return Identifier(self.shift_token().text)
        elif token.kind is TokenKind.NUMBER:
            return NumberLiteral(self.shift_token().text)
        elif token.kind is TokenKind.STRING:
            return StringLiteral(self.shift_token().text)
        elif token.kind is TokenKind.BOOLEAN:
            return BooleanLiteral(self.shift_token().text)
        elif token.kind is TokenKind.BRACKET_OPEN:
            if not in_condition and self._is_function_literal():
                return self.parse_function_literal()
            return self.parse_brackets()
        elif token.kind is TokenKind.BLOCK_OPEN:
            return Block(self.parse_body("block"))
        elif token.kind in (TokenKind.IF, TokenKind.UNLESS):
            return self.parse_conditional()

        raise ParseError("an expression cannot start with {}", token)

    def _is_function_literal(self):
        """Scans ahead to the ")" matching the current "(" and checks whether a "{" follows it."""
        depth = 0
        for idx in range(self.pos, len(self.tokens)):
            kind = self.tokens[idx].kind
            if kind is TokenKind.BRACKET_OPEN:
                depth += 1
            elif kind is TokenKind.BRACKET_CLOSE:
                depth -= 1
                if depth == 0:
                    return idx + 1 < len(self.tokens) and self.tokens[idx + 1].kind is TokenKind.BLOCK_OPEN
        return False

    def parse_call(self):
        callee = Identifier(self.expect(TokenKind.IDENTIFIER, "function call").text)
        args = self.parse_list(self.parse_value, "function call")
        return Call(callee, args)

    def parse_function_literal(self):
        params = self.parse_list(self.parse_param, "parameter list")
        if len({param.name for param in params}) != len(params):
            raise ParseError("duplicate parameter in '({})'", ", ".join(str(param) for param in params))
        body = self.parse_body("function body")
        return FunctionLiteral(params, body)

    def parse_param(self):
        return Identifier(self.expect(TokenKind.IDENTIFIER, "parameter list").text)

    def parse_list(self, parse_element, context):
        """Parses "(" element ("," element)* ")". A trailing comma, or any other token after an element, is an
        error.
        """
        self.expect(TokenKind.BRACKET_OPEN, context)

        elements = []
        if self.at(TokenKind.BRACKET_CLOSE):
            self.shift_token()
            return tuple(elements)

        while True:
            elements.append(parse_element())

            if self.at(TokenKind.COMMA):
                self.shift_token()
            elif self.at(TokenKind.BRACKET_CLOSE):
                self.shift_token()
                return tuple(elements)
            else:
                found = self.current_token if self.current_token is not None else "end of input"
                raise ParseError("expected ',' or ')' in {}, got {}", (context, found))

    def parse_body(self, context):
        """Parses "{" primary* "}" and returns the primaries."""
        self.expect(TokenKind.BLOCK_OPEN, context)

        body = []
        while not self.at(TokenKind.BLOCK_CLOSE):
            if self.current_token is None:
                raise ParseError("end of input reached before {} was closed", context)
            body.append(self.parse_primary())

        self.shift_token()  # eat "}"
        return tuple(body)

    def parse_brackets(self):
        self.expect(TokenKind.BRACKET_OPEN, "grouping")
        if self.at(TokenKind.BRACKET_CLOSE):
            raise ParseError("empty brackets are not an expression")

        expr = self.parse_value()
        self.expect(TokenKind.BRACKET_CLOSE, "grouping")
        return expr

    def parse_conditional(self):
        """Parses if/unless chains into a single Conditional. "unless c {a} else {b}" is stored as "if c {b} else
        {a}", and "else if"/"else unless" chains are flattened into the branch list.
        """
        negated = self.shift_token().kind is TokenKind.UNLESS
        condition = self.parse_value(in_condition=True)
        body = Block(self.parse_body("conditional body"))

        alternative = None
        if self.at(TokenKind.ELSE):
            self.shift_token()  # eat "else"
            if self.at(TokenKind.IF, TokenKind.UNLESS):
                alternative = self.parse_conditional()
            else:
                alternative = Block(self.parse_body("else body"))

        if not negated:
            if isinstance(alternative, Conditional):
                return Conditional((Branch(condition, body),) + alternative.branches, alternative.else_body)
            return Conditional((Branch(condition, body),), alternative)

        if alternative is None:
            alternative = Block(())
        elif isinstance(alternative, Conditional):
            alternative = Block((alternative,))
        return Conditional((Branch(condition, alternative),), body)
