"""Runs .fn files or starts the fn command-line mode. Also uses error handling context manager. Called from the fn
console script.

Python version must be >=3.7, because error handling requires that dicts are insertion-ordered.
"""

import argparse
import sys

from fnlang.lang.error import ErrorHandler, GenericException
from fnlang.lang.lexical import tokenize
from fnlang.lang.parser import parse
from fnlang.lang.runtime import show
from fnlang.lang.session import Session
from fnlang.lang.shell import Shell


def dump(path, tokens_only):
    """Prints the tokens or the expression tree of the file at path, without running it."""
    try:
        with open(path, "r") as file:
            source = file.read()
    except OSError:
        raise GenericException("'{}' could not be opened", path, diagnosis=False)

    tokens = tokenize(source)

    if tokens_only:
        for token in tokens:
            print(token)
    else:
        for node in parse(tokens):
            print(node.display())


def main(argv=None):
    """Runs fn interpreter. Called from fn executable script."""
    assert sys.version_info >= (3, 7), "fn cannot be run with python < 3.7"

    with ErrorHandler() as error_handler:
        parser = argparse.ArgumentParser(prog="fn")
        parser.add_argument("file", help="file to interpret and run (if empty, goes to command-line mode)", nargs="?")
        parser.add_argument("--tokens", action="store_true", help="print the file's tokens instead of running it")
        parser.add_argument("--tree", action="store_true", help="print the file's expression tree instead of running it")
        args = parser.parse_args(argv)

        if args.file is not None and (args.tokens or args.tree):
            error_handler.register_file(args.file)
            dump(args.file, args.tokens)

        elif args.file is not None:
            sess = Session(error_handler, args.file, cmd_line=False)
            sess.run()

            if sess.results:
                print(show(sess.results[-1]))

        else:
            Shell(Session(error_handler, Session.SH_FILE, cmd_line=True)).cmdloop()


if __name__ == "__main__":
    main()
