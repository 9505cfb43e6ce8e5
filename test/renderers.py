"""
Default renderer tests (text, markup, ansi surfaces).

Conventions
- Test method names follow CamelCase per project convention.
"""
import unittest
from types import SimpleNamespace
from unittest import TestCase

from phrasebook.renderers import *


class TestRenderers(TestCase):
    """Placeholder lookup, escaping, and surfaces."""

    def testWholeValuePlaceholder(self):
        self.assertEqual(text("{value} minutes", 30), "30 minutes")

    def testMappingAndAttributeLookup(self):
        self.assertEqual(text("raid at {gym}", {"gym": "painted lot"}), "raid at painted lot")
        self.assertEqual(text("raid at {gym}", SimpleNamespace(gym="painted lot")), "raid at painted lot")

    def testFormatSpecsApply(self):
        self.assertEqual(text("{value:.1f}", 2.25), "2.2")

    def testMissingPlaceholder(self):
        with self.assertRaises(KeyError):
            text("{boss}", {"gym": "painted lot"})

    def testMarkupIsStrippedForText(self):
        self.assertEqual(text("[bold]{gym}[/bold]", {"gym": "painted lot"}), "painted lot")

    def testMarkupIsPreserved(self):
        self.assertEqual(markup("[bold]{gym}[/bold]", {"gym": "painted lot"}), "[bold]painted lot[/bold]")

    def testValuesAreEscaped(self):
        self.assertEqual(text("{gym}", {"gym": "[red]lot[/red]"}), "[red]lot[/red]")

    def testNonStringValuesAreEscaped(self):
        self.assertEqual(text("{places}", {"places": ("[b]downtown",)}), "('[b]downtown',)")
        self.assertEqual(text("{places}", {"places": ["[/x]"]}), "['[/x]']")
        self.assertEqual(markup("[bold]{value}[/bold]", SimpleNamespace(name="[i]lot")), "[bold]namespace(name='\\[i]lot')[/bold]")

    def testEscapingAppliesAfterFormatSpec(self):
        self.assertEqual(text("{gym:>8}", {"gym": "[b]lot"}), "  [b]lot")

    def testConversionsAndNestedLookupsAreEscaped(self):
        self.assertEqual(text("{gym!r}", {"gym": "[b]lot"}), "'[b]lot'")
        self.assertEqual(text("{places[0]}", {"places": ("[b]downtown",)}), "[b]downtown")
        self.assertEqual(text("{value.gym}", SimpleNamespace(gym="[b]lot")), "[b]lot")

    def testAnsiEmitsEscapes(self):
        rendered = ansi("[bold]{gym}[/bold]", {"gym": "painted lot"})
        self.assertIn("painted lot", rendered)
        self.assertIn("\x1b[", rendered)

    def testDefaults(self):
        self.assertEqual(set(DEFAULTS), {"text", "markup", "ansi"})
        self.assertIs(DEFAULTS["text"], text)
        with self.assertRaises(TypeError):
            DEFAULTS["embed"] = text


if __name__ == "__main__":
    unittest.main()
