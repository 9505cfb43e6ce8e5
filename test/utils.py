"""
Utility tests (Unset sentinel, coalesce, mirror, introspective metaclass).

Conventions
- Test method names follow CamelCase per project convention.
"""
import unittest
from unittest import TestCase

from phrasebook.utils import *


class Sample(metaclass=IntrospectiveType):
    __introspectable__ = ("items", "label")
    __sealed__ = True

    def __new__(cls, items, label):
        self = super().__new__(cls)
        self._items = items
        self._label = label
        return self


class TestUtils(TestCase):
    """Shared helpers."""

    def testUnsetIsFalsySingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")
        with self.assertRaises(TypeError):
            class Derived(UnsetType):  # NOQA: F-841
                pass

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)

    def testRename(self):
        @rename("renamed")
        def original():
            pass

        self.assertEqual(original.__name__, "renamed")
        with self.assertRaises(TypeError):
            rename(original, 42)

    def testMirrorReturnsCopies(self):
        sample = Sample([1, 2], "a")
        sample.items.append(3)
        self.assertEqual(sample.items, [1, 2])
        with self.assertRaises(AttributeError):
            sample.label = "b"

    def testTypenameAndRepr(self):
        self.assertEqual(Sample.__typename__, "sample")
        self.assertEqual(repr(Sample((1,), "a")), "sample(items=[1], label='a')")

    def testDisplayableNarrowsRepr(self):
        class Narrow(metaclass=IntrospectiveType):
            __introspectable__ = ("items", "label")
            __displayable__ = ("label",)

            def __new__(cls, items, label):
                self = super().__new__(cls)
                self._items = items
                self._label = label
                return self

        self.assertIs(Sample.__displayable__, Unset)
        self.assertEqual(repr(Narrow((1,), "a")), "narrow(label='a')")

    def testSealed(self):
        with self.assertRaises(TypeError):
            class Derived(Sample):  # NOQA: F-841
                pass


if __name__ == "__main__":
    unittest.main()
