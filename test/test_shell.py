"""
Tests for the dispatch loop, the console and the shell factories.

This module verifies:
- Line processing: hint banner, results, headers, display-time.
- The command loop: exit handling, end of input, error recovery and rendering.
- Output rendering, including the top-level flattening of containers.
- Script replay and logfile duplication.
- Help commands, explicit registration, handler hooks and subshells.
"""
import itertools
import os
import tempfile
import unittest
from io import StringIO
from typing import Annotated
from unittest import TestCase, mock

from rich.console import Console

from nautilus import *


def console():
    return Console(file=StringIO(), width=200, color_system=None, highlight=False)


class Calculator:
    @command
    def add(self, a: int, b: int) -> int:
        return a + b

    @command(header="sum of {0}:")
    def total(self, *values: Annotated[int, param("value", "a term")]):
        return sum(values)

    @command
    def fail(self):
        raise ValueError("broken handler")

    @command
    def numbers(self):
        return [1, [2, 3], None, (4,), frozenset({5})]

    @command(header="{5}")
    def malformed(self):
        return "unreachable"

    @command
    def nothing(self):
        return None


class Scaled:
    CLI_OUTPUT_CONVERTERS = (
        lambda value: value * 10 if isinstance(value, int) else None,
    )

    @command
    def scalar(self):
        return 5

    @command
    def vector(self):
        return [1, [2]]


class Unprintable:
    def __str__(self):
        raise RuntimeError("no text for this value")


class Fragile:
    CLI_OUTPUT_CONVERTERS = (
        lambda value: 1 / 0 if value == 13 else None,
    )

    @command
    def add(self, a: int, b: int) -> int:
        return a + b

    @command(header="{0.missing}")
    def shifted(self, a: int):
        return a

    @command
    def unlucky(self):
        return 13

    @command
    def unprintable(self):
        return Unprintable()


class Tracker:
    def __init__(self):
        self.events = []
        self.shell = None

    def __shell__(self, shell):
        self.shell = shell
        self.events.append("shell")

    def __enter_loop__(self):
        self.events.append("enter")

    def __leave_loop__(self):
        self.events.append("leave")


class Nesting:
    def __init__(self):
        self.shell = None

    def __shell__(self, shell):
        self.shell = shell

    @command
    def enter(self):
        create_subshell("sub", self.shell, "Sub", Calculator()).command_loop()


class ShellTestCase(TestCase):
    """
    Shared fixture: a console shell over in-memory streams.
    """

    def make(self, stdin="", *handlers):
        self.out = console()
        self.err = console()
        self.io = ConsoleIO(StringIO(stdin), self.out, self.err)
        self.shell = create_console_shell("calc", "Calculator", *(handlers or (Calculator(),)), io=self.io)
        return self.shell

    @property
    def output(self):
        return self.out.file.getvalue()

    @property
    def errors(self):
        return self.err.file.getvalue()


class ProcessLineTest(ShellTestCase):
    """
    Test suite for Shell.process_line().
    """

    def setUp(self) -> None:
        self.make()

    def testResult(self) -> None:
        """
        The converted result of the command is printed.
        """
        self.shell.process_line("add 2 3")
        self.assertEqual(self.output, "5\n")

    def testAbbreviation(self) -> None:
        """
        Commands can be called by their abbreviation.
        """
        self.shell.process_line("a 2 3")
        self.assertEqual(self.output, "5\n")

    def testHint(self) -> None:
        """
        A lone '?' prints the hint banner.
        """
        self.shell.process_line("  ?  ")
        self.assertEqual(self.output, HINT % "Calculator" + "\n")

    def testEmptyLine(self) -> None:
        """
        Blank lines and comments do nothing.
        """
        self.shell.process_line("   ")
        self.shell.process_line("# nothing to see")
        self.assertEqual(self.output, "")

    def testNoneIsNotPrinted(self) -> None:
        """
        A None result prints nothing.
        """
        self.shell.process_line("nothing")
        self.assertEqual(self.output, "")

    def testHeader(self) -> None:
        """
        The header is formatted with the converted arguments and printed first.
        """
        self.shell.process_line("total 1 2 3")
        self.assertEqual(self.output, "sum of (1, 2, 3):\n6\n")

    def testMalformedHeader(self) -> None:
        """
        A header referencing missing arguments is a shell error.
        """
        with self.assertRaises(HeaderError):
            self.shell.process_line("malformed")

    def testHeaderAttributeError(self) -> None:
        """
        Any failure while formatting the header is a header error.
        """
        self.make("", Fragile())
        with self.assertRaises(HeaderError) as context:
            self.shell.process_line("shifted 4")
        self.assertIsInstance(context.exception.__cause__, AttributeError)

    def testRenderFailures(self) -> None:
        """
        Failing output converters and unprintable results are render errors.
        """
        self.make("", Fragile())
        with self.assertRaises(RenderError) as context:
            self.shell.process_line("unlucky")
        self.assertIsInstance(context.exception.__cause__, ZeroDivisionError)
        with self.assertRaises(RenderError) as context:
            self.shell.process_line("unprintable")
        self.assertIsInstance(context.exception.__cause__, RuntimeError)

    def testFaultsPropagate(self) -> None:
        """
        Resolution and conversion faults are raised to the caller.
        """
        with self.assertRaises(CommandNotFoundError):
            self.shell.process_line("divide 1 2")
        with self.assertRaises(ArityMismatchError):
            self.shell.process_line("add 1 2 3")
        with self.assertRaises(TokenConversionError):
            self.shell.process_line("add 1 two")

    def testHandlerErrorIsTheResult(self) -> None:
        """
        An error raised by a handler is displayed as the command result.
        """
        self.shell.process_line("fail")
        self.assertIn("ValueError: broken handler", self.output)
        self.assertEqual(self.errors, "")
        self.assertIsNone(self.shell.last_exception)

    def testDisplayTime(self) -> None:
        """
        Once enabled, the elapsed time follows every result.
        """
        with mock.patch("time.perf_counter", side_effect=itertools.count(0, 0.25).__next__):
            self.shell.process_line("add 2 3")
            self.shell.process_line("!set-display-time true")
            self.shell.process_line("add 2 3")
        self.assertTrue(self.shell.display_time)
        self.assertTrue(self.output.startswith("5\n"))
        self.assertTrue(self.output.endswith("5\ntime: 250 ms\n"))

    def testDisplayTimeZero(self) -> None:
        """
        A zero elapsed time is not printed.
        """
        self.shell.process_line("!sdt true")
        with mock.patch("time.perf_counter", return_value=1.0):
            self.shell.process_line("add 2 3")
        self.assertTrue(self.output.endswith("5\n"))
        self.assertNotIn("time:", self.output.split("5\n")[-1])

    def testAddCommand(self) -> None:
        """
        Commands can be registered explicitly from a callable.
        """
        def double(value: int) -> int:
            return value * 2

        descriptor = self.shell.add_command(double)
        self.assertEqual(descriptor.abbreviation, "d")
        self.shell.process_line("double 21")
        self.shell.add_command(double, "!", name="twice")
        self.shell.process_line("!twice 4")
        self.assertEqual(self.output, "42\n8\n")


class OutputTest(ShellTestCase):
    """
    Test suite for ConsoleIO.output().

    A top-level container is flattened without header while nested ones print
    "Array" or "Collection": this asymmetry is intentional.
    """

    def testTopLevelFlattening(self) -> None:
        """
        Top-level elements are printed one per line, nested containers with a header.
        """
        self.make()
        self.shell.process_line("numbers")
        self.assertEqual(self.output, "1\nArray\n    2\n    3\nArray\n    4\nCollection\n    5\n")

    def testConvertersPerElement(self) -> None:
        """
        Converters apply once to a top-level scalar and once to every element.
        """
        self.make("", Scaled())
        self.shell.process_line("scalar")
        self.shell.process_line("vector")
        self.assertEqual(self.output, "50\n10\nArray\n    20\n")

    def testStringsAreScalars(self) -> None:
        """
        Strings and mappings are never flattened.
        """
        self.make()
        self.io.output("abc", OutputConversion())
        self.io.output({"k": 1}, OutputConversion())
        self.assertEqual(self.output, "abc\n{'k': 1}\n")


class CommandLoopTest(ShellTestCase):
    """
    Test suite for Shell.command_loop().
    """

    def testExit(self) -> None:
        """
        The loop prints the application name and stops on exit.
        """
        self.make("add 2 3\nexit\nadd 1 1\n")
        self.shell.command_loop()
        self.assertEqual(self.output, "Calculator\ncalc> 5\ncalc> ")

    def testExitIsSilent(self) -> None:
        """
        The error raised by the exit line itself is recorded but never shown.
        """
        self.make("  exit  \n")
        self.shell.command_loop()
        self.assertEqual(self.errors, "")
        self.assertIsInstance(self.shell.last_exception, CommandNotFoundError)

    def testDisplayErrorsAreRecovered(self) -> None:
        """
        Header, output converter and rendering failures do not end the loop.
        """
        self.make("shifted 4\nunlucky\nunprintable\nadd 1 2\nexit\n", Fragile())
        self.shell.command_loop()
        self.assertIn("object has no attribute 'missing'", self.errors)
        self.assertIn("division by zero", self.errors)
        self.assertIn("no text for this value", self.errors)
        self.assertIn("calc> 3\ncalc> ", self.output)
        self.assertIsInstance(self.shell.last_exception, RenderError)

    def testEndOfInput(self) -> None:
        """
        The loop stops at the end of input.
        """
        self.make("add 1 1\n")
        self.shell.command_loop()
        self.assertEqual(self.output, "Calculator\ncalc> 2\ncalc> ")

    def testErrorsAreRecovered(self) -> None:
        """
        Errors are rendered and the loop goes on.
        """
        self.make("frobnicate\nadd 1 2 3\nadd 1 1\nexit\n")
        self.shell.command_loop()
        self.assertIn('unknown command "frobnicate"', self.errors)
        self.assertIn("there's no command \"add\" taking 3 arguments", self.errors)
        self.assertIn("calc> 2\n", self.output)
        self.assertIsInstance(self.shell.last_exception, CommandNotFoundError)

    def testTokenPointer(self) -> None:
        """
        Conversion errors underline the offending token under the prompt.
        """
        self.make("add 2 xyz\n")
        self.shell.command_loop()
        first, *rest = self.errors.splitlines()
        self.assertEqual(first, "-" * len("calc> add 2 ") + "^^^")
        self.assertIn("cannot convert 'xyz' to int", self.errors)
        self.assertIsInstance(self.shell.last_exception, TokenConversionError)

    def testLastException(self) -> None:
        """
        The last error can be displayed by a built-in command.
        """
        self.make("nope\n!get-last-exception\nexit\n")
        self.shell.command_loop()
        self.assertIn('unknown command "nope"', self.output)

    def testHooks(self) -> None:
        """
        Handlers are told about their shell and about the loop.
        """
        tracker = Tracker()
        self.make("exit\n", Calculator(), tracker)
        self.assertIs(tracker.shell, self.shell)
        self.shell.command_loop()
        self.assertEqual(tracker.events, ["shell", "enter", "leave"])

    def testSubshell(self) -> None:
        """
        A subshell extends the prompt and runs inside a command of its parent.
        """
        self.make("enter\nadd 1 1\nexit\nexit\n", Nesting())
        self.shell.command_loop()
        self.assertIn("Sub\ncalc/sub> 2\ncalc/sub> calc> ", self.output)


class ConsoleCommandsTest(ShellTestCase):
    """
    Test suite for script replay and logging.
    """

    def setUp(self) -> None:
        self.directory = tempfile.TemporaryDirectory()

    def tearDown(self) -> None:
        self.directory.cleanup()

    def path(self, name):
        return os.path.join(self.directory.name, name)

    def testRunScript(self) -> None:
        """
        Script lines are echoed after a "$ " prompt, then input goes back to live.
        """
        script = self.path("script.txt")
        with open(script, "w", encoding="utf-8") as file:
            file.write("add 1 2\nadd 3 4\n")

        self.make("!run-script %s\nexit\n" % escape(script))
        self.shell.command_loop()
        self.assertIn("calc$ add 1 2\n3\ncalc$ add 3 4\n7\ncalc> ", self.output)
        self.assertIs(self.io.state, InputState.LIVE)

    def testRunScriptInvalidEncoding(self) -> None:
        """
        Undecodable bytes are replaced; the other script lines still run.
        """
        script = self.path("broken.txt")
        with open(script, "wb") as file:
            file.write(b"add 1 2\n\xff\xfe bad\nadd 3 4\n")

        self.make("!run-script %s\nexit\n" % escape(script))
        self.shell.command_loop()
        self.assertIn("calc$ add 1 2\n3\n", self.output)
        self.assertIn("calc$ add 3 4\n7\ncalc> ", self.output)
        self.assertIsInstance(self.shell.last_exception, CommandNotFoundError)
        self.assertIs(self.io.state, InputState.LIVE)

    def testUnreadableScript(self) -> None:
        """
        A script that cannot be read any more is closed and reported as an input error.
        """
        script = self.path("script.txt")
        with open(script, "w", encoding="utf-8") as file:
            file.write("add 1 2\n")

        self.make()
        self.io.run_script(script)
        self.io._script.close()
        with self.assertRaises(InputError):
            self.io.read_line(("calc",))
        self.assertIs(self.io.state, InputState.LIVE)

    def testLogging(self) -> None:
        """
        Prompts, typed lines and results are duplicated in the logfile.
        """
        logfile = self.path("session.log")
        self.make("!enable-logging %s\nadd 2 3\n!disable-logging\n!disable-logging\nexit\n" % escape(logfile))
        self.shell.command_loop()

        with open(logfile, encoding="utf-8") as file:
            self.assertEqual(file.read(), "calc> add 2 3\n5\ncalc> !disable-logging\n")
        self.assertIn("Logging disabled\n", self.output)
        self.assertIn("Logging is already disabled\n", self.output)

    def testLoggingClosedWithLoop(self) -> None:
        """
        Leaving the loop that enabled logging closes the logfile.
        """
        logfile = self.path("session.log")
        self.make("!el %s\nexit\n" % escape(logfile))
        self.shell.command_loop()
        self.assertFalse(self.io.logging)
        with open(logfile, encoding="utf-8") as file:
            self.assertEqual(file.read(), "calc> exit\n")


class HelpTest(ShellTestCase):
    """
    Test suite for the help commands.
    """

    def setUp(self) -> None:
        self.make()

    def testList(self) -> None:
        """
        ?list shows the application commands only.
        """
        self.shell.process_line("?list")
        self.assertIn("add(a:int, b:int) : int", self.output)
        self.assertNotIn("!set-display-time", self.output)

    def testListAll(self) -> None:
        """
        ?list-all shows the built-in commands too.
        """
        self.shell.process_line("?la")
        self.assertIn("!set-display-time", self.output)
        self.assertIn("?help", self.output)
        self.assertIn("!run-script", self.output)

    def testBanner(self) -> None:
        """
        ?help without argument shows the banner.
        """
        self.shell.process_line("?help")
        self.assertIn("This is Calculator, running on Nautilus", self.output)

    def testHelpCommand(self) -> None:
        """
        ?help COMMAND describes every command denoted by COMMAND.
        """
        self.shell.process_line("?help total")
        self.assertIn("total(*value:int) : Any", self.output)
        self.assertIn("a term", self.output)

    def testHelpUnknown(self) -> None:
        """
        ?help on an unknown command says so.
        """
        self.shell.process_line("?help frobnicate")
        self.assertIn('unknown command "frobnicate"', self.output)


class ConfigTest(TestCase):
    """
    Test suite for ShellConfig.
    """

    def testWithAuxHandlersMerges(self) -> None:
        """
        Added aux handlers extend the existing ones.
        """
        io = ConsoleIO(StringIO(), console(), console())
        extra = Tracker()
        config = ShellConfig(io, io, {"!": [io]}).with_aux_handlers({"!": [extra], "+": [extra]})
        self.assertEqual(config.aux_handlers["!"], (io, extra))
        self.assertEqual(config.aux_handlers["+"], (extra,))

    def testValidation(self) -> None:
        """
        Input and output must implement the line source and sink methods.
        """
        with self.assertRaises(TypeError):
            ShellConfig(object(), object())

    def testSubshellInheritsAuxHandlers(self) -> None:
        """
        A subshell shares the I/O and the aux handlers of its parent.
        """
        io = ConsoleIO(StringIO(), console(), console())
        parent = create_console_shell("calc", "Calculator", Calculator(), io=io)
        subshell = create_subshell("sub", parent, "Sub", Calculator())
        self.assertEqual(subshell.path, ("calc", "sub"))
        self.assertIs(subshell.config.input, io)
        self.assertEqual(subshell.table.resolve("!run-script", 1).invoker.__self__, io)
        self.assertIs(subshell.table.namer, parent.table.namer)


if __name__ == "__main__":
    unittest.main()
