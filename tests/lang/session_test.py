import contextlib
import io
import os
import tempfile
import unittest

from fnlang.lang.error import ErrorHandler, GenericException, LexError, ParseError, Redefinition, UnknownIdentifier
from fnlang.lang.session import Session
from fnlang.lang.shell import Shell


def new_session(resolver=None):
    return Session(ErrorHandler(fatal=False), Session.SH_FILE, cmd_line=True, resolver=resolver)


class SessionTestCase(unittest.TestCase):

    def test_units_share_root(self):
        sess = new_session()
        sess.evaluate_source("add = (a, b) { a + b }")
        self.assertEqual(5, sess.evaluate_source("add(2, 3)"))

    def test_results(self):
        sess = new_session()
        sess.add("x = 5; x * 2", 1)
        sess.add("x + 1", 2)
        sess.run()
        self.assertEqual([10, 6], sess.results)
        self.assertEqual("6", sess.pop())
        self.assertEqual([10], sess.results)
        self.assertEqual({}, sess.to_exec)

    def test_empty_unit(self):
        sess = new_session()
        should_raise = ["", "   ", "# comment only"]
        for case in should_raise:
            self.assertRaises(ValueError, sess.add, case)

    def test_runtime_error_rolls_back(self):
        sess = new_session()
        sess.evaluate_source("x = 1")

        self.assertRaises(UnknownIdentifier, sess.evaluate_source, "y = 2; z = 3; missing")
        self.assertRaises(UnknownIdentifier, sess.evaluate_source, "y")
        self.assertEqual(1, sess.evaluate_source("x"))
        self.assertEqual({}, sess.to_exec)

    def test_redefinition_rolls_back(self):
        sess = new_session()
        sess.evaluate_source("x = 1")
        self.assertRaises(Redefinition, sess.evaluate_source, "y = 2; x = 3")
        self.assertEqual(2, sess.evaluate_source("y = 2"))  # y was never committed

    def test_parse_errors_leave_root_untouched(self):
        sess = new_session()
        sess.evaluate_source("x = 1")
        self.assertRaises(ParseError, sess.evaluate_source, "y = 2; (")
        self.assertRaises(LexError, sess.evaluate_source, "y = 2; >")
        self.assertIn("x", sess.root.bindings)
        self.assertNotIn("y", sess.root.bindings)

    def test_closures_see_later_units(self):
        sess = new_session()
        sess.evaluate_source("greet = () { name }")
        sess.evaluate_source('name = "fn"')
        self.assertEqual("fn", sess.evaluate_source("greet()"))

    def test_closures_see_same_unit_bindings(self):
        sess = new_session()
        sess.evaluate_source("greet = () { name }")
        self.assertEqual("fn", sess.evaluate_source('name = "fn"; greet()'))

    def test_failed_unit_rolls_back_block_writes(self):
        sess = new_session()
        sess.evaluate_source("point = { x = 1 }")
        self.assertRaises(UnknownIdentifier, sess.evaluate_source, "point.(y = 2); missing")
        self.assertRaises(UnknownIdentifier, sess.evaluate_source, "point.y")
        self.assertEqual(2, sess.evaluate_source("point.(y = 2)"))

    def test_failed_unit_rolls_back_import(self):
        sess = new_session()
        sess.evaluate_source("x = 1")
        sess.evaluate_source("M = { x = 2; y = 3 }")
        self.assertRaises(UnknownIdentifier, sess.evaluate_source, "import M; missing")
        self.assertEqual(1, sess.evaluate_source("x"))
        self.assertNotIn("y", sess.root.bindings)

    def test_failed_unit_rolls_back_use(self):
        def resolver(name, env):
            env.assign(name, 7)

        sess = new_session(resolver)
        self.assertRaises(UnknownIdentifier, sess.evaluate_source, "use seven; missing")
        self.assertNotIn("seven", sess.root.bindings)
        self.assertEqual(7, sess.evaluate_source("use seven; seven"))

    def test_import_across_units(self):
        sess = new_session()
        sess.evaluate_source("x = 1")
        sess.evaluate_source("M = { x = 2; y = 3 }")
        sess.evaluate_source("import M")
        self.assertEqual(5, sess.evaluate_source("x + y"))

    def test_use_warns_without_resolver(self):
        sess = new_session()
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            self.assertEqual(1, sess.evaluate_source("use http; 1"))
        self.assertIn("warning: ", out.getvalue())
        self.assertIn("http", out.getvalue())

    def test_use_with_resolver(self):
        def resolver(name, env):
            env.assign(name, 7)

        sess = new_session(resolver)
        self.assertEqual(7, sess.evaluate_source("use seven; seven"))

    def test_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "prog.fn")
            with open(path, "w") as file:
                file.write("# squares\nsquare = (x) { x * x }\nsquare(9)\n")

            sess = Session(ErrorHandler(fatal=False), path, cmd_line=False)
            sess.run()
            self.assertEqual([81], sess.results)

    def test_missing_file(self):
        self.assertRaises(GenericException, Session, ErrorHandler(), "/nonexistent/prog.fn", False)

    def test_reserved_filename(self):
        self.assertRaises(GenericException, Session, ErrorHandler(), Session.SH_FILE, False)


class ShellTestCase(unittest.TestCase):

    def run_lines(self, *lines):
        shell = Shell(new_session())
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            for line in lines:
                shell.onecmd(line)
        return shell, out.getvalue()

    def test_prints_values(self):
        __, out = self.run_lines("x = 2", "x * 21")
        self.assertEqual("2\n42\n", out)

    def test_line_continuation(self):
        shell, out = self.run_lines("add = (a, b) {", "a + b", "}", "add(1, 2)")
        self.assertEqual("<fn(a, b)>\n3\n", out)
        self.assertEqual(Shell._tmp_prompt, shell.prompt)

    def test_pending_prompt(self):
        shell, __ = self.run_lines("f = (a) {")
        self.assertEqual(Shell.secondary_prompt, shell.prompt)

    def test_empty_line_flushes_error(self):
        shell, out = self.run_lines("f = (a) {", "", "1")
        self.assertIn("error: ", out)
        self.assertEqual("1\n", out.splitlines(keepends=True)[-1])

    def test_runtime_error_keeps_root(self):
        shell, out = self.run_lines("x = 1", "y = 2; missing", "y", "x")
        self.assertIn("error: ", out)
        self.assertEqual("1\n", out.splitlines(keepends=True)[-1])
        self.assertNotIn("y", shell.sess.root.bindings)

    def test_exit(self):
        shell = Shell(new_session())
        self.assertTrue(shell.onecmd("exit"))

    def test_env(self):
        __, out = self.run_lines("x = 1", "env")
        self.assertEqual("1\n{x: 1}\n", out)

    def test_commands_as_function_names(self):
        cases = {
            ("help = (x) { x * 2 }", "help(4)"): "<fn(x)>\n8\n",
            ("exit = (c) { c }", "exit(1)"): "<fn(c)>\n1\n",
            ("env = (e) { e }", "env(3)"): "<fn(e)>\n3\n",
        }
        for lines, expected in cases.items():
            __, out = self.run_lines(*lines)
            self.assertEqual(expected, out, lines)

    def test_bad_argument_list_is_reported(self):
        shell, out = self.run_lines("f = (a) { a }", "f(1, )", "")
        self.assertIn("error: ", out)
        self.assertEqual(Shell._tmp_prompt, shell.prompt)


if __name__ == '__main__':
    unittest.main()
