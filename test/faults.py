"""
Faults module behavioral tests.

Scope
- FaultCode normalization and getdoc() lookups through __main__.
- trigger(): raising outside shell mode, printing (and exiting) inside it.
- Rich rendering of exceptions, warnings and the grouped ParseExit.
"""
import io
import sys
import unittest
from unittest import TestCase, mock

from rich.console import Console
from rich.panel import Panel

from switchboard import *
from switchboard import faults


def unknown(**options):
    return UnrecognizedTokenError(
        "unknown switch 'x' at first position",
        title="unknown switch",
        code=FaultCode.UNKNOWN_SWITCH,
        hint="check the help",
        **options,
    )


class TestFaultCode(TestCase):

    def testNormalizeDefaultsToNumber(self):
        self.assertEqual(FaultCode.UNKNOWN_SWITCH.normalize(), "21101")

    def testNormalizeUsesHostLabels(self):
        main = sys.modules["__main__"]
        with mock.patch.object(main, "__codes__", {FaultCode.REPARSE: "W-REPARSE"}, create=True):
            self.assertEqual(FaultCode.REPARSE.normalize(), "W-REPARSE")
            self.assertEqual(FaultCode.DUPLICATE_NAME.normalize(), "21201")

    def testGetdoc(self):
        self.assertIsNone(getdoc(FaultCode.CAPTURE_OVERFLOW))
        main = sys.modules["__main__"]
        with mock.patch.object(main, "__docs__", {FaultCode.CAPTURE_OVERFLOW: "too many values"}, create=True):
            self.assertEqual(getdoc(FaultCode.CAPTURE_OVERFLOW), "too many values")

    def testGetdocRejectsPlainIntegers(self):
        with self.assertRaises(TypeError):
            getdoc(21101)


class TestTrigger(TestCase):

    def setUp(self):
        self.console = Console(file=io.StringIO(), color_system=None, width=100)
        patcher = mock.patch.object(faults, "console", self.console)
        patcher.start()
        self.addCleanup(patcher.stop)

    def testRaisesOutsideShell(self):
        with self.assertRaises(UnrecognizedTokenError) as context:
            trigger(unknown())
        self.assertEqual(context.exception.message, "unknown switch 'x' at first position")

    def testPrintsDeferredInShell(self):
        trigger(unknown(), shell=True, deferred=True)
        self.assertIn("unknown switch 'x' at first position", self.console.file.getvalue())

    def testExitsInShell(self):
        with self.assertRaises(SystemExit) as context:
            trigger(unknown(), shell=True)
        self.assertEqual(context.exception.code, 1)

    def testWarningOutsideShell(self):
        with self.assertWarns(ReparseWarning):
            trigger(ReparseWarning("again", title="repeated parse", code=FaultCode.REPARSE))

    def testWarningPrintsInShell(self):
        trigger(ReparseWarning("again", title="repeated parse", code=FaultCode.REPARSE), shell=True)
        self.assertIn("Repeated Parse", self.console.file.getvalue())

    def testRejectsObjectsWithoutHooks(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("plain"))

    def testGroupRaisesOutsideShell(self):
        with self.assertRaises(ParseExit) as context:
            trigger(ParseExit([unknown()]))
        self.assertEqual(len(context.exception.exceptions), 1)


class TestRendering(TestCase):

    @staticmethod
    def render(renderable):
        console = Console(color_system=None, force_terminal=False, width=100)
        with console.capture() as capture:
            console.print(renderable)
        return capture.get()

    def testReplaceMergesOptions(self):
        fault = unknown(token="-x")
        replaced = fault.__replace__(shell=True)
        self.assertIsNot(replaced, fault)
        self.assertEqual(replaced.message, fault.message)
        self.assertEqual(replaced.options["token"], "-x")
        self.assertTrue(replaced.options["shell"])
        self.assertNotIn("shell", fault.options)

    def testHeader(self):
        output = self.render(unknown(tool=Parser("crypt")))
        self.assertIn("[ crypt — 21101 | Unknown Switch ]", output)
        self.assertIn("unknown switch 'x' at first position", output)
        self.assertIn("→ check the help", output)

    def testHeaderUsesRootName(self):
        child = Parser("crypt").command("encrypt")
        self.assertIn("[ crypt — ", self.render(unknown(tool=child)))

    def testProgramOverride(self):
        main = sys.modules["__main__"]
        with mock.patch.object(main, "__prog__", "cryptctl", create=True):
            self.assertIn("[ cryptctl — ", self.render(unknown()))

    def testFancyIsPanel(self):
        self.assertIsInstance(unknown(fancy=True).__rich__(), Panel)
        self.assertIsInstance(ParseExit([unknown()], fancy=True).__rich__(), Panel)

    def testGroup(self):
        group = ParseExit([unknown(), unknown()], tool=Parser("crypt"))
        self.assertIsInstance(group, ExceptionGroup)
        self.assertEqual(group.message, "bad parse")
        output = self.render(group)
        self.assertIn("[ crypt — Bad Parse ]", output)
        self.assertEqual(output.count("Unknown Switch"), 2)

    def testDuplicateNameIsValueError(self):
        self.assertTrue(issubclass(DuplicateNameError, ValueError))
        self.assertTrue(issubclass(DuplicateNameError, ParseException))


if __name__ == '__main__':
    unittest.main()
