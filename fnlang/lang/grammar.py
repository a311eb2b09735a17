"""Expression-tree nodes produced by the parser. The set of node types is closed: the interpreter has exactly one
handler per class below, and nodes are frozen once built.

```
<node> ::= NumberLiteral | StringLiteral | BooleanLiteral   ; literals keep their source text
         | Identifier                                        ; also names operators, e.g. Identifier("+")
         | Call(callee: Identifier, args)                    ; a + b is Call(Identifier("+"), (a, b))
         | FunctionLiteral(params, body)                     ; (a, b) { ... }
         | Block(body)                                       ; { ... }
         | Conditional(branches, else_body)                  ; if/unless ... else ...
         | Use(module_name) | Import(module_name)
```
"""

from dataclasses import dataclass
from typing import Optional, Tuple


class Node:
    """Superclass of every expression-tree node."""

    def display(self, indents=0):
        """Recursively displays the tree under self in a readable, indented format."""
        return "    " * indents + str(self)


def _sequence(body):
    return "; ".join(str(node) for node in body)


@dataclass(frozen=True)
class NumberLiteral(Node):
    text: str

    def __str__(self):
        return self.text


@dataclass(frozen=True)
class StringLiteral(Node):
    text: str

    def __str__(self):
        return f'"{self.text}"'


@dataclass(frozen=True)
class BooleanLiteral(Node):
    text: str

    def __str__(self):
        return self.text


@dataclass(frozen=True)
class Identifier(Node):
    name: str

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class Call(Node):
    callee: Identifier
    args: Tuple[Node, ...]

    @property
    def is_infix(self):
        return len(self.args) == 2 and self.callee.name in INFIX_NAMES

    def __str__(self):
        if self.is_infix:
            lhs, rhs = self.args
            if self.callee.name == ".":
                return f"{lhs}.{rhs}"
            return f"({lhs} {self.callee.name} {rhs})"
        return f"{self.callee}({', '.join(str(arg) for arg in self.args)})"

    def display(self, indents=0):
        result = f"{'    ' * indents}Call({self.callee}"
        for arg in self.args:
            result += "\n" + arg.display(indents + 1)
        return result + ")"


@dataclass(frozen=True)
class FunctionLiteral(Node):
    params: Tuple[Identifier, ...]
    body: Tuple[Node, ...]

    def __str__(self):
        return f"({', '.join(str(param) for param in self.params)}) {{ {_sequence(self.body)} }}"


@dataclass(frozen=True)
class Block(Node):
    body: Tuple[Node, ...]

    def __str__(self):
        return f"{{ {_sequence(self.body)} }}" if self.body else "{ }"


@dataclass(frozen=True)
class Branch:
    """A single (condition, body) arm of a Conditional. Not a node by itself."""
    condition: Node
    body: Block


@dataclass(frozen=True)
class Conditional(Node):
    """An ordered list of branches plus an optional fallback. unless-conditionals are stored in their if form."""
    branches: Tuple[Branch, ...]
    else_body: Optional[Block] = None

    def __str__(self):
        result = " else ".join(f"if {branch.condition} {branch.body}" for branch in self.branches)
        if self.else_body is not None:
            result += f" else {self.else_body}"
        return result


@dataclass(frozen=True)
class Use(Node):
    module_name: str

    def __str__(self):
        return f"use {self.module_name}"


@dataclass(frozen=True)
class Import(Node):
    module_name: str

    def __str__(self):
        return f"import {self.module_name}"


# strongest first, one rank per row. Repeats of one operator group left to right, but "1 - 2 + 3" is "1 - (2 + 3)"
PRECEDENCE = (
    (".",),
    ("=",),
    ("|",),
    ("*",),
    ("/",),
    ("+",),
    ("-",),
    ("eq",),
    ("and",),
    ("or",),
)

RANKS = {op: len(PRECEDENCE) - idx for idx, row in enumerate(PRECEDENCE) for op in row}  # higher binds tighter
INFIX_NAMES = frozenset(RANKS)

NODE_TYPES = (
    NumberLiteral, StringLiteral, BooleanLiteral, Identifier, Call, FunctionLiteral, Block, Conditional, Use, Import
)
