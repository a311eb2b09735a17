"""Handles interactive/command-line mode for the fn interpreter. Uses cmd as backend.

A line that does not parse is assumed to be incomplete and is kept for the next line (there is no way to tell an
unfinished statement from a syntax error). Entering an empty line while input is pending forces the pending input
through, so that a real syntax error gets reported.
"""

import cmd

from fnlang.lang.error import ParseError


class Shell(cmd.Cmd):
    """fn interpreter shell."""
    intro = "fn interpreter :: Python backend\nType 'help' for more information."
    prompt = "> "
    secondary_prompt = ". "  # used for line continuations
    _tmp_prompt = "> "       # also used for prompt swapping in line continuations

    def __init__(self, sess, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.sess = sess

        self._tmp_line = ""
        self.line_num = 0

    def onecmd(self, line):
        """Sends every line to default while input is pending, so that continuations are never read as commands."""
        if self._tmp_line:
            return self.default(line)
        return super().onecmd(line)

    def default(self, line):
        """Executes arbitrary fn code."""
        with self.sess.error_handler:  # needed because cmd.Cmd automatically exits on Exception
            self.line_num += 1
            force = bool(self._tmp_line) and not line.strip()
            source = self._tmp_line + line + "\n"

            try:
                self.sess.add(source, self.line_num)
            except ParseError:
                if force:
                    self._reset()
                    raise
                self._tmp_line = source
                self.prompt = self.secondary_prompt
                return
            except ValueError:
                self._reset()
                return  # if source is empty, terminate
            except Exception:
                self._reset()
                raise

            self._reset()
            self.sess.run()

            if self.sess.results and self.sess.results[-1] is not None:
                print(self.sess.pop())

    def _reset(self):
        self._tmp_line = ""
        self.prompt = self._tmp_prompt

    def do_help(self, arg):
        """Doesnt return docs, but rather a short intro."""
        if arg:
            return self.default(f"help {arg}")  # e.g. "help(4)" calls a user function named help
        print("Welcome to the fn interpreter!\n\n"
              "Every line is an expression. Bind names with '=', which works only once per name:\n"
              "  > add = (a, b) { a + b }\n"
              "  > add(2, 3)\n"
              "  5\n\n"
              "Blocks '{ ... }' are values too: 'point = { x = 1 }' then 'point.x' gives 1.\n"
              "Use 'import point' to copy a block's names into scope, 'env' to list the names\n"
              "defined so far, and 'exit' to quit. A line that does not parse is continued on\n"
              "the next one; enter an empty line to see the error instead.")

    def do_env(self, arg):
        """Lists the bindings made in this session."""
        if arg:
            return self.default(f"env {arg}")  # e.g. "env = 1" is code, not a command
        print(repr(self.sess.root))

    def emptyline(self):
        """Do not repeat previous command on empty line."""
        return ""

    def do_EOF(self, arg):
        """Exits interpreter."""
        print()
        return self.do_exit(arg)

    def do_exit(self, arg):
        """Exits interpreter."""
        if arg:
            return self.default(f"exit {arg}")
        return True
