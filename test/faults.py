"""
Fault tests (codes, stage mapping, rendering, and triggering).

Scope
- Validate the FaultCode -> FailureDetail mapping and host remapping via __main__.
- Validate CommandException options, copies, and rich rendering.
- Validate trigger() in raise and shell modes, and getdoc().

Conventions
- Test method names follow CamelCase per project convention.
"""
import io
import unittest
from unittest import TestCase
from unittest.mock import patch

from rich.console import Console
from rich.panel import Panel

from phrasebook.faults import *


class TestFaultCodes(TestCase):
    """Stable codes and their stages."""

    def testStageRanges(self):
        self.assertEqual(FaultCode.MISMATCHED_CAPTURE.detail, FailureDetail.INTERNAL)
        self.assertEqual(FaultCode.UNMATCHED_COMMAND.detail, FailureDetail.PARSE)
        self.assertEqual(FaultCode.INVALID_PARAMETERS.detail, FailureDetail.VALIDATE)
        self.assertEqual(FaultCode.NOT_REPEATABLE.detail, FailureDetail.EXECUTE)
        self.assertEqual(FaultCode.RENDER_FAILED.detail, FailureDetail.FORMAT)
        self.assertIsNone(FaultCode.AMBIGUOUS_COMMAND.detail)

    def testNormalize(self):
        self.assertEqual(FaultCode.NOT_REPEATABLE.normalize(), "14102")
        with patch("__main__.__codes__", {FaultCode.NOT_REPEATABLE: "E-REPEAT"}, create=True):
            self.assertEqual(FaultCode.NOT_REPEATABLE.normalize(), "E-REPEAT")

    def testGetdoc(self):
        self.assertIsNone(getdoc(FaultCode.NOT_REPEATABLE))
        with patch("__main__.__docs__", {FaultCode.NOT_REPEATABLE: "run it again"}, create=True):
            self.assertEqual(getdoc(FaultCode.NOT_REPEATABLE), "run it again")
        with self.assertRaises(TypeError):
            getdoc(14102)


class TestCommandException(TestCase):
    """Fault objects."""

    def testMessageAndDetail(self):
        fault = NotRepeatableError("command 'add' cannot be repeated", command="add")
        self.assertEqual(str(fault), "command 'add' cannot be repeated")
        self.assertEqual(fault.code, FaultCode.NOT_REPEATABLE)
        self.assertEqual(fault.detail, FailureDetail.EXECUTE)
        self.assertEqual(fault.options["command"], "add")

    def testCodeOverride(self):
        fault = ExecutionError("boom", code=FaultCode.RENDER_FAILED)
        self.assertEqual(fault.detail, FailureDetail.FORMAT)

    def testOptionsAreReadOnly(self):
        with self.assertRaises(TypeError):
            ExecutionError("boom").options["command"] = "add"

    def testReplaceKeepsTypeMessageAndCause(self):
        try:
            raise ExecutionError("boom") from ValueError("boom")
        except ExecutionError as fault:
            replaced = fault.__replace__(shell=True)
        self.assertIsInstance(replaced, ExecutionError)
        self.assertEqual(replaced.message, "boom")
        self.assertTrue(replaced.options["shell"])
        self.assertIsInstance(replaced.__cause__, ValueError)

    def testPlainRendering(self):
        console = Console(file=io.StringIO(), width=100, color_system=None)
        console.print(UnmatchedCommandError("no match", command="add", hint="try !help"))
        output = console.file.getvalue()
        self.assertIn("[ add — 12101 | Unmatched Command Error ]", output)
        self.assertIn("no match", output)
        self.assertIn("try !help", output)

    def testFancyRendering(self):
        self.assertIsInstance(ExecutionError("boom", fancy=True).__rich__(), Panel)


class TestTrigger(TestCase):
    """trigger() surfaces faults."""

    def testRaisesOutsideShell(self):
        with self.assertRaises(ExecutionError) as context:
            trigger(ExecutionError("boom"), command="add")
        self.assertEqual(context.exception.options["command"], "add")

    def testPrintsInShell(self):
        console = Console(file=io.StringIO(), width=100, color_system=None)
        with patch("phrasebook.faults.console", console):
            self.assertIsNone(trigger(ExecutionError("boom"), shell=True))
        self.assertIn("boom", console.file.getvalue())

    def testRejectsNonFaults(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("boom"))


if __name__ == "__main__":
    unittest.main()
