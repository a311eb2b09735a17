"""Error handling for the fn language. Only GenericExceptions should be encountered during running: if another type of
error is raised and makes it all the way to ErrorHandler, it is assumed to be an internal issue.

Errors are split by the stage that raises them:

```
GenericException
 ├── LexError              ; no token rule matches the remaining input
 ├── ParseError            ; grammar violation, aborts the whole unit
 └── FnRuntimeError        ; raised while evaluating a tree
      ├── UnknownIdentifier
      ├── Redefinition
      ├── NotCallable
      ├── ArityMismatch
      └── NonBlockDereference
```
"""

import sys

from termcolor import colored


class GenericException(Exception):
    """Templates an error/warning message so that it can be used to throw a fn error/warning. msg may contain '{}'
    slots, which are filled (and bolded) with exprs.
    """

    def __init__(self, msg, exprs=None, start=0, end=-1, diagnosis=True, internal=False):
        """Parses args for GenericException or warning."""
        if exprs is None:
            exprs = ""
        if not isinstance(exprs, (list, tuple)):
            exprs = [exprs]

        exprs = [str(expr) for expr in exprs]
        self.msg = msg.format(*(colored(expr, attrs=["bold"]) for expr in exprs))  # color expr snippets
        self.plain_msg = msg.format(*exprs)
        self.expr = exprs[0] if exprs else ""  # exprs[0] should be the offending expr that caused the error
        self.end = end if end != -1 else len(self.expr)  # needed for error display

        self.start = start
        self.diagnosis = diagnosis
        self.internal = internal

        super().__init__(self.plain_msg)


class LexError(GenericException):
    """Raised by the lexer when no rule matches the remaining input."""


class ParseError(GenericException):
    """Raised by the parser on any grammar violation, including running out of tokens mid-construct."""

    def __init__(self, msg, exprs=None, **kwargs):
        kwargs.setdefault("diagnosis", False)
        super().__init__(msg, exprs, **kwargs)


class FnRuntimeError(GenericException):
    """Raised while evaluating an expression tree. Aborts the current unit only."""

    def __init__(self, msg, exprs=None, **kwargs):
        kwargs.setdefault("diagnosis", False)
        super().__init__(msg, exprs, **kwargs)


class UnknownIdentifier(FnRuntimeError):

    def __init__(self, name):
        super().__init__("'{}' is not defined", name)
        self.name = name


class Redefinition(FnRuntimeError):

    def __init__(self, name):
        super().__init__("cannot redefine '{}'", name)
        self.name = name


class NotCallable(FnRuntimeError):

    def __init__(self, name):
        super().__init__("'{}' is not a function", name)
        self.name = name


class ArityMismatch(FnRuntimeError):

    def __init__(self, name, expected, got):
        super().__init__("'{}' expects {} argument(s), got {}", (name, expected, got))
        self.name = name
        self.expected = expected
        self.got = got


class NonBlockDereference(FnRuntimeError):

    def __init__(self, expr, value):
        super().__init__("'{}' is not a block (got {})", (expr, value))


class ErrorHandler:
    """Context manager that will silently suppress Python errors and raise custom fn errors/warnings."""
    ERROR = "red"
    WARNING = "magenta"

    def __init__(self, fatal=True):
        self.fatal = fatal
        self.traceback = {}

    def register_file(self, path):
        """Registers path in traceback."""
        self.traceback[path] = (None, None)

    def register_line(self, path, line, line_num):
        """Registers line in traceback given path. Should be called prior to Session add/run."""
        self.traceback[path] = (line, line_num)

    def remove_line(self, path):
        """Removes line from traceback given path. Should be called after successful Session add/run."""
        self.traceback[path] = (None, None)

    @staticmethod
    def diagnose(error, warning=False):
        """Returns offending part of error.expr highlighted and bolded."""
        color = ErrorHandler.WARNING if warning else ErrorHandler.ERROR
        expr = error.expr.splitlines()[0] if error.expr.strip() else error.expr

        diagnosis = "  " + expr[:error.start]

        end = max(min(error.end, len(expr)), error.start + 1)
        diagnosis += colored(expr[error.start:end], color, attrs=["bold"])
        diagnosis += expr[end:] + "\n"

        diagnosis += "  " + " " * error.start
        diagnosis += colored("^" + "~" * (end - error.start - 1), color, attrs=["bold"])

        return diagnosis

    def _location(self):
        """Returns 'file:line: ' for the innermost registered line, or '' if none is registered."""
        for file, (line, line_num) in reversed(list(self.traceback.items())):
            if line is not None:
                return colored(f"{file}:{line_num}: ", attrs=["bold"])
        return ""

    def warn(self, *args, **kwargs):
        """Generates and prints runtime warning message based on args."""
        error = GenericException(*args, **kwargs)

        error_msg = self._location()
        error_msg += colored("warning: ", ErrorHandler.WARNING, attrs=["bold"]) + error.msg

        print(error_msg)

        if not error.internal and error.expr and error.diagnosis:
            print(ErrorHandler.diagnose(error, warning=True))

    def throw(self, error):
        """Throws error using error and self.traceback. error must be a GenericException, and self.traceback must be a
        dict of file: (line, line_num) representing origination of error.
        """
        error_msg = ""
        lines = 0
        for file, (line, line_num) in self.traceback.items():  # assumes dict is insertion-ordered
            if line:
                error_msg += f"  File '{file}', line {line_num}:\n"
                error_msg += "".join(f"    {src}\n" for src in line.rstrip().splitlines())
                lines += 1

        if lines > 1:
            error_msg = "Traceback:\n" + error_msg

        if error.internal:
            error_msg += colored("[internal] ", ErrorHandler.ERROR, attrs=["bold"])

        error_msg += colored("error: ", ErrorHandler.ERROR, attrs=["bold"]) + error.msg
        print(error_msg)

        if not error.internal and error.expr and error.diagnosis:
            print(ErrorHandler.diagnose(error))

        if self.fatal:
            sys.exit(1)
        self.traceback = {path: (None, None) for path in self.traceback}  # keep files, drop stale lines

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        do_exit = False
        if exc_type is KeyboardInterrupt:
            self.throw(GenericException("keyboard interrupt"))
        elif exc_type is SystemExit:
            do_exit = True
        elif exc_type is RecursionError:
            self.throw(GenericException("maximum recursion depth exceeded", internal=True))
        elif exc_type is not None and issubclass(exc_type, GenericException):
            self.throw(exc_val)
        elif exc_type is not None:
            self.throw(GenericException("unknown error: '{}'", f"{exc_type.__name__}: {exc_val}", internal=True))
            do_exit = True

        return not do_exit
