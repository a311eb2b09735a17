"""Tree-walking evaluator for the fn language.

Every node type in grammar.NODE_TYPES has exactly one handler. Three infix operators get special evaluation instead of
being looked up like ordinary functions:

```
name = value    ; binds name in the current frame (once)
block.expr      ; evaluates expr inside block
value | fn      ; calls fn with value
```
"""

from fnlang.lang.error import (
    ArityMismatch, FnRuntimeError, GenericException, NonBlockDereference, NotCallable
)
from fnlang.lang.grammar import (
    Block, BooleanLiteral, Call, Conditional, FunctionLiteral, Identifier, Import, NumberLiteral, StringLiteral, Use
)
from fnlang.lang.runtime import Closure, Environment, NativeFunction, truthy


class Interpreter:
    """Evaluates expression trees against Environments. resolver, if given, is called as resolver(name, env) for each
    "use" declaration and may bind whatever the module provides into env.
    """

    def __init__(self, resolver=None):
        self.resolver = resolver
        self.journal = None  # Journal of the unit being run, if any
        self.handlers = {
            NumberLiteral: self.eval_number,
            StringLiteral: self.eval_string,
            BooleanLiteral: self.eval_boolean,
            Identifier: self.eval_identifier,
            Call: self.eval_call,
            FunctionLiteral: self.eval_function_literal,
            Block: self.eval_block,
            Conditional: self.eval_conditional,
            Use: self.eval_use,
            Import: self.eval_import,
        }
        self.special_forms = {
            "=": self.eval_assignment,
            ".": self.eval_dereference,
            "|": self.eval_pipe,
        }

    def run(self, nodes, env, journal=None):
        """Evaluates top-level nodes in order against env and returns their values. Binding changes are recorded in
        journal, if given, so the caller can roll them back.
        """
        outer, self.journal = self.journal, journal
        try:
            return [self.evaluate(node, env) for node in nodes]
        finally:
            self.journal = outer

    def evaluate(self, node, env):
        handler = self.handlers.get(type(node))
        if handler is None:
            raise GenericException("cannot evaluate '{}'", type(node).__name__, internal=True)
        return handler(node, env)

    def evaluate_sequence(self, body, env, fallback=None):
        """Evaluates body in env and returns the last value that is not None, or fallback if there is none."""
        result = None
        for node in body:
            value = self.evaluate(node, env)
            if value is not None:
                result = value
        return result if result is not None else fallback

    # literals

    def eval_number(self, node, env):
        return int(node.text)

    def eval_string(self, node, env):
        return node.text

    def eval_boolean(self, node, env):
        return node.text == "true"

    def eval_identifier(self, node, env):
        return env.lookup(node.name)

    # calls

    def eval_call(self, node, env):
        special_form = self.special_forms.get(node.callee.name)
        if special_form is not None:
            return special_form(node, env)

        fn = env.lookup(node.callee.name)
        args = [self.evaluate(arg, env) for arg in node.args]
        return self.call(node.callee.name, fn, args)

    def call(self, name, fn, args):
        """Invokes fn (an Environment with a call behaviour) with already-evaluated args."""
        behaviour = fn.callable if isinstance(fn, Environment) else None
        if behaviour is None:
            raise NotCallable(name)

        if behaviour.arity is not None and behaviour.arity != len(args):
            raise ArityMismatch(name, behaviour.arity, len(args))

        if isinstance(behaviour, NativeFunction):
            try:
                return behaviour.fn(*args)
            except (TypeError, ZeroDivisionError) as e:
                raise FnRuntimeError("'{}' failed: {}", (name, e)) from e

        frame = Environment(behaviour.env.visible())
        for param, arg in zip(behaviour.params, args):
            frame.bindings[param.name] = arg

        return self.evaluate_sequence(behaviour.body, frame, fallback=frame)

    def eval_assignment(self, node, env):
        target, definition = node.args
        if not isinstance(target, Identifier):
            raise FnRuntimeError("cannot assign to '{}'", target)
        value = self.evaluate(definition, env)
        if self.journal is not None:
            self.journal.record(env, target.name)
        return env.assign(target.name, value)

    def eval_dereference(self, node, env):
        """Evaluates the right operand inside the block the left operand yields. For calls, only the callee is
        resolved inside the block: arguments still come from env.
        """
        source, member = node.args
        block = self.evaluate(source, env)
        if not isinstance(block, Environment):
            raise NonBlockDereference(source, block)

        if isinstance(member, Call) and member.callee.name not in self.special_forms:
            fn = block.lookup(member.callee.name)
            args = [self.evaluate(arg, env) for arg in member.args]
            return self.call(member.callee.name, fn, args)

        return self.evaluate(member, block)

    def eval_pipe(self, node, env):
        value_expr, fn_expr = node.args
        value = self.evaluate(value_expr, env)
        fn = self.evaluate(fn_expr, env)
        return self.call(str(fn_expr), fn, [value])

    # blocks

    def eval_function_literal(self, node, env):
        return Environment(callable=Closure(env, node.params, node.body))

    def eval_block(self, node, env):
        frame = env.child()
        for expr in node.body:
            self.evaluate(expr, frame)
        return frame

    def eval_conditional(self, node, env):
        for branch in node.branches:
            if truthy(self.evaluate(branch.condition, env)):
                return self.evaluate_sequence(branch.body.body, env.child())

        if node.else_body is not None:
            return self.evaluate_sequence(node.else_body.body, env.child())
        return None

    # modules

    def eval_use(self, node, env):
        if self.resolver is not None:
            before = dict(env.bindings)
            try:
                self.resolver(node.module_name, env)
            finally:
                if self.journal is not None:
                    self.journal.record_changes(env, before)
        return None

    def eval_import(self, node, env):
        module = env.lookup(node.module_name)
        if not isinstance(module, Environment):
            raise NonBlockDereference(node.module_name, module)
        if self.journal is not None and not env.sealed:
            for name in module.bindings:
                self.journal.record(env, name)
        env.merge(module)
        return None
