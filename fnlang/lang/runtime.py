"""Runtime values for the fn language. Environments ("blocks") are both lexical scopes and first-class values: an
Environment owns a mapping of names to values and may carry exactly one call behaviour, either a NativeFunction
(host code) or a Closure (captured environment + parameters + body).
"""

from types import MappingProxyType

from fnlang.lang.error import FnRuntimeError, Redefinition, UnknownIdentifier


class NativeFunction:
    """Call behaviour backed by a Python callable. arity is None for variadic functions."""

    def __init__(self, name, fn, arity=None):
        self.name = name
        self.fn = fn
        self.arity = arity

    def __repr__(self):
        return f"<native {self.name}>"


class Closure:
    """Call behaviour of a function literal: the environment it was defined in, its parameters and its body."""

    def __init__(self, env, params, body):
        self.env = env
        self.params = params
        self.body = body

    @property
    def arity(self):
        return len(self.params)

    def __repr__(self):
        return f"<fn({', '.join(param.name for param in self.params)})>"


class Journal:
    """Undo log of binding changes made while a unit runs. rollback restores every recorded frame, newest change
    first, so a failed unit leaves no bindings behind in any frame it touched.
    """

    def __init__(self):
        self.entries = []  # (env, name, existed, old value)

    def record(self, env, name):
        """Remembers the state of name in env's own mapping. Call before changing it."""
        self.entries.append((env, name, name in env.bindings, env.bindings.get(name)))

    def record_changes(self, env, before):
        """Records every name whose binding in env differs from the snapshot before."""
        for name, value in env.bindings.items():
            if name not in before or before[name] is not value:
                self.entries.append((env, name, name in before, before.get(name)))

    def rollback(self):
        for env, name, existed, value in reversed(self.entries):
            if existed:
                env.bindings[name] = value
            else:
                env.bindings.pop(name, None)
        self.entries = []


class Environment:
    """A binding frame. Names can be bound only once in a frame's own mapping (see assign); lookups fall back to the
    parent frame, if any.
    """

    def __init__(self, bindings=None, parent=None, callable=None, sealed=False):
        self.bindings = dict(bindings) if bindings is not None else {}
        self.parent = parent
        self.callable = callable
        self.sealed = sealed  # native-backed frames never take new bindings

    @classmethod
    def root(cls, builtins=None):
        """Returns a fresh root environment, populated from the builtins registry."""
        return cls(BUILTINS if builtins is None else builtins)

    @classmethod
    def native(cls, **functions):
        """Returns a namespace block of native functions, e.g. Environment.native(start=(fn, 0)). Values are either
        plain callables (variadic) or (callable, arity) pairs.
        """
        bindings = {}
        for name, value in functions.items():
            fn, arity = value if isinstance(value, tuple) else (value, None)
            bindings[name] = Environment(callable=NativeFunction(name, fn, arity), sealed=True)
        return cls(bindings, sealed=True)

    def child(self):
        """Returns an isolated frame whose lookups fall back to self. Writes stay in the child."""
        return Environment(parent=self)

    def lookup(self, name):
        env = self
        while env is not None:
            if name in env.bindings:
                return env.bindings[name]
            env = env.parent
        raise UnknownIdentifier(name)

    def assign(self, name, value):
        if self.sealed:
            raise FnRuntimeError("cannot bind '{}' in a native block", name)
        if name in self.bindings:
            raise Redefinition(name)
        self.bindings[name] = value
        return value

    def merge(self, other):
        """Copies all of other's own bindings into self, overwriting on collision."""
        if self.sealed:
            raise FnRuntimeError("cannot import into a native block")
        self.bindings.update(other.bindings)

    def visible(self):
        """Returns every binding reachable from this frame, nearer frames shadowing farther ones."""
        frames = []
        env = self
        while env is not None:
            frames.append(env.bindings)
            env = env.parent

        result = {}
        for bindings in reversed(frames):
            result.update(bindings)
        return result

    def __repr__(self):
        if self.callable is not None:
            return repr(self.callable)

        own = {name: value for name, value in self.bindings.items() if BUILTINS.get(name) is not value}
        return "{" + ", ".join(f"{name}: {show(value)}" for name, value in own.items()) + "}"


def truthy(value):
    """Only nil (None) and false are falsy."""
    return value is not None and value is not False


def show(value):
    """Returns the display form of a runtime value."""
    if value is None:
        return "nil"
    elif isinstance(value, bool):
        return "true" if value else "false"
    return str(value) if not isinstance(value, Environment) else repr(value)


def _divide(a, b):
    if b == 0:
        raise FnRuntimeError("division by zero")
    if isinstance(a, int) and isinstance(b, int):
        return a // b
    return a / b


def _print(*values):
    print(" ".join(show(value) for value in values))


def _builtin(name, fn, arity):
    return Environment(callable=NativeFunction(name, fn, arity), sealed=True)


BUILTINS = MappingProxyType({
    "+": _builtin("+", lambda a, b: a + b, 2),
    "-": _builtin("-", lambda a, b: a - b, 2),
    "*": _builtin("*", lambda a, b: a * b, 2),
    "/": _builtin("/", _divide, 2),
    "eq": _builtin("eq", lambda a, b: a == b and type(a) is type(b), 2),
    "and": _builtin("and", lambda a, b: truthy(a) and truthy(b), 2),
    "or": _builtin("or", lambda a, b: truthy(a) or truthy(b), 2),
    "!": _builtin("!", lambda a: not truthy(a), 1),
    "print": _builtin("print", _print, None),
    # "=", "." and "|" are handled by the interpreter
})
