"""Session control for the fn language. Runs program units (a whole file, or one shell input) against a persistent
root environment, either in command line mode or file interpretation mode.

Each unit is evaluated in the root environment itself, with every binding change recorded in a Journal. If the unit
raises, the journal is rolled back, so a failing unit never leaves half of its bindings behind, in the root or in any
block it wrote to.
"""

from fnlang.lang.error import GenericException
from fnlang.lang.interpreter import Interpreter
from fnlang.lang.lexical import tokenize
from fnlang.lang.parser import parse
from fnlang.lang.runtime import Environment, Journal, show


class Session:
    """Governs a fn session, with control over the root environment."""
    SH_FILE = "<in>"  # command-line interpreter filename

    def __init__(self, error_handler, path, cmd_line, resolver=None):
        self.error_handler = error_handler
        self.error_handler.register_file(path)

        self.path = path          # used for error messages
        self.cmd_line = cmd_line  # whether or not in command-line mode

        self.interpreter = Interpreter(resolver if resolver is not None else self._unresolved)
        self.root = Environment.root()
        self.to_exec = {}   # dict of line num: (source, nodes) waiting to be run
        self.results = []   # last value of every unit that ran successfully

        if self.cmd_line:
            self.error_handler.fatal = False

        if path != Session.SH_FILE:
            try:
                with open(path, "r") as file:
                    source = file.read()
            except OSError:
                raise GenericException("'{}' could not be opened", path, diagnosis=False)

            self.add(source, 1)

        elif not cmd_line:
            raise GenericException("'<in>' is a reserved filename")

    @staticmethod
    def parse(source):
        """Lexes and parses source into a tuple of nodes. Raises LexError or ParseError."""
        return parse(tokenize(source))

    def add(self, source, line_num=1):
        """Parses source and queues it as a unit. Evaluation is delayed until run is called. Raises ValueError if
        source holds no expressions.
        """
        self.error_handler.register_line(self.path, source, line_num)  # in case error is raised

        nodes = Session.parse(source)
        if not nodes:
            self.error_handler.remove_line(self.path)
            raise ValueError("nothing to run")
        self.to_exec[line_num] = (source, nodes)

        self.error_handler.remove_line(self.path)  # error was not raised

    def run(self):
        """Runs queued units in order against the root environment. Will raise any errors that are encountered; the
        failing unit's binding changes are rolled back first.
        """
        for line_num, (source, nodes) in list(self.to_exec.items()):
            self.error_handler.register_line(self.path, source, line_num)

            journal = Journal()
            try:
                values = self.interpreter.run(nodes, self.root, journal)
            except BaseException:
                journal.rollback()
                raise
            finally:
                del self.to_exec[line_num]

            self.results.append(values[-1])

            self.error_handler.remove_line(self.path)

    def evaluate_source(self, source, line_num=1):
        """Adds and runs source, returning the value of its last expression."""
        self.add(source, line_num)
        self.run()
        return self.results[-1]

    def pop(self):
        """Removes the latest result and returns its display form."""
        return show(self.results.pop())

    def _unresolved(self, name, env):
        """Default "use" handler: there is no module resolver, so the declaration is ignored."""
        self.error_handler.warn("no module resolver configured, 'use {}' ignored", name, diagnosis=False)
