"""
Tests for the internal helpers.

This module verifies semantic guarantees of the `Unset` sentinel and of the
small helpers built around it:
- Singleton identity, falsy semantics and representation.
- Copying, deep copying and pickling preserve identity.
- PEP 604 unions usable in isinstance checks.
- Finality (type cannot be subclassed).
- nullify() and rename().
"""
import copy
import pickle
import unittest
from unittest import TestCase

from rich.console import Console

from switchboard.utils import *


class UnsetTest(TestCase):
    """
    Test suite for the `UnsetType` singleton.
    """

    def setUp(self) -> None:
        self.unset: UnsetType = UnsetType()

    def testSingleton(self) -> None:
        """
        The constructor returns the same object reference on every call.
        """
        self.assertIs(self.unset, UnsetType())
        self.assertIs(self.unset, Unset)

    def testFalsely(self) -> None:
        self.assertFalse(bool(Unset))

    def testNotEqualToNoneOrEmpty(self) -> None:
        """
        Falsy does not imply equality with other falsy values.
        """
        self.assertNotEqual(Unset, None)
        self.assertNotEqual(Unset, "")
        self.assertNotEqual(Unset, False)  # noqa: E712

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")

    def testRichConsolePrint(self) -> None:
        """
        Console.print(...) renders 'Unset' without ANSI when color is disabled.
        """
        console = Console(color_system=None, force_terminal=False)
        with console.capture() as capture:
            console.print(Unset)
        self.assertEqual(capture.get().strip(), "Unset")

    def testCopyDeepcopyPreserveSingleton(self) -> None:
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)
        self.assertIs(copy.deepcopy({"key": Unset})["key"], Unset)

    def testPickleRoundTrip(self) -> None:
        """
        Pickle round-trips preserve the identity of the singleton.
        """
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testUnion(self) -> None:
        """
        `str | Unset` and `Unset | str` both work in isinstance checks.
        """
        self.assertIsInstance("value", str | Unset)
        self.assertIsInstance(Unset, str | Unset)
        self.assertIsInstance(Unset, Unset | str)
        self.assertNotIsInstance(1, str | Unset)

    def testFinalClass(self) -> None:
        with self.assertRaises(TypeError):
            type("UnsetType", (UnsetType,), {})


class HelpersTest(TestCase):

    def testNullifyUnset(self) -> None:
        self.assertIsNone(nullify(Unset))
        self.assertEqual(nullify(Unset, "fallback"), "fallback")

    def testNullifyPassesFalsyValues(self) -> None:
        """
        Only the sentinel is replaced, never other falsy values.
        """
        self.assertEqual(nullify("", "fallback"), "")
        self.assertEqual(nullify(0, 1), 0)
        self.assertIsNone(nullify(None, "fallback"))

    def testRenameInPlace(self) -> None:
        def function():
            pass

        self.assertIs(rename(function, name="renamed"), function)
        self.assertEqual(function.__name__, "renamed")
        self.assertEqual(function.__qualname__, "renamed")

    def testRenameCurried(self) -> None:
        @rename("decorated")
        def function():
            pass

        self.assertEqual(function.__name__, "decorated")

    def testRenameRejectsNonString(self) -> None:
        with self.assertRaises(TypeError):
            rename(lambda: None)


if __name__ == '__main__':
    unittest.main()
