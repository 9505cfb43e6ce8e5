"""
Preprocessing tests (stage classification, execution counter, format selection).

Scope
- Validate that each preprocessing stage tags its own failures (internal, parse,
  validate) and chains the collaborator exception.
- Validate fixed vs. context-dependent converter variants.
- Validate PreprocessedCommand execution: repeatability, counter, execute vs. format
  failures, and CommandResult contents.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (Preprocessor, PreprocessedCommand, CommandResult).
"""
import re
import unittest
from types import MappingProxyType
from unittest import TestCase

from phrasebook import *
from phrasebook.converters import record, string, number


def parser():
    return ParserBuilder(gym=FRAGMENTS["names"], timer=FRAGMENTS["timer"]).build("!add {{gym}} in {{timer}}")


def creator(repeatable=False, format="{gym}"):
    def create(params, context):
        return PreprocessedCommand(
            "add", params, context, execute=lambda params, context: dict(params), format=format, repeatable=repeatable
        )
    return create


def fail(message):
    def raiser(*args):
        raise ValueError(message)
    return raiser


CONVERT = record({"gym": string, "timer": number})


class TestPreprocessor(TestCase):
    """Stage classification of Preprocessor.preprocess."""

    def testFixedConverter(self):
        preprocessor = Preprocessor(parser(), creator(), converter=CONVERT)
        command = preprocessor.preprocess("!add painted lot in 30")
        self.assertEqual(preprocessor.variant, "fixed")
        self.assertIsInstance(command, PreprocessedCommand)
        self.assertEqual(dict(command.params), {"gym": "painted lot", "timer": 30})
        self.assertIsNone(command.context)

    def testContextualConverter(self):
        seen = []

        def factory(context):
            seen.append(context)
            return CONVERT

        preprocessor = Preprocessor(parser(), creator(), factory=factory)
        command = preprocessor.preprocess("!add painted lot in 30", "ctx")
        self.assertEqual(preprocessor.variant, "contextual")
        self.assertEqual(seen, ["ctx"])
        self.assertEqual(command.context, "ctx")

    def testExactlyOneConverterVariant(self):
        with self.assertRaises(TypeError):
            Preprocessor(parser(), creator())
        with self.assertRaises(TypeError):
            Preprocessor(parser(), creator(), converter=CONVERT, factory=lambda context: CONVERT)
        with self.assertRaises(TypeError):
            Preprocessor(parser(), creator(), converter="nope")

    def testNoMatchIsParseFailure(self):
        preprocessor = Preprocessor(parser(), creator(), converter=CONVERT)
        with self.assertRaisesRegex(UnmatchedCommandError, "no match") as context:
            preprocessor.preprocess("!remove painted lot")
        self.assertEqual(context.exception.detail, FailureDetail.PARSE)

    def testParserFaultIsInternal(self):
        broken = CommandParser(re.compile(r"^(a)(b)$"), ("gym",))
        preprocessor = Preprocessor(broken, creator(), converter=CONVERT)
        with self.assertRaisesRegex(MismatchedCaptureError, "mismatched capture count") as context:
            preprocessor.preprocess("ab")
        self.assertEqual(context.exception.detail, FailureDetail.INTERNAL)

    def testFactoryFaultIsInternal(self):
        preprocessor = Preprocessor(parser(), creator(), factory=fail("directory unavailable"))
        with self.assertRaisesRegex(ConverterFactoryError, "directory unavailable") as context:
            preprocessor.preprocess("!add painted lot in 30")
        self.assertEqual(context.exception.detail, FailureDetail.INTERNAL)
        self.assertIsInstance(context.exception.__cause__, ValueError)

    def testFactoryReturningNonCallableIsInternal(self):
        preprocessor = Preprocessor(parser(), creator(), factory=lambda context: None)
        with self.assertRaises(ConverterFactoryError):
            preprocessor.preprocess("!add painted lot in 30")

    def testConversionFaultIsValidate(self):
        preprocessor = Preprocessor(parser(), creator(), converter=fail("unknown gym"))
        with self.assertRaisesRegex(InvalidParametersError, "unknown gym") as context:
            preprocessor.preprocess("!add painted lot in 30")
        self.assertEqual(context.exception.detail, FailureDetail.VALIDATE)

    def testValidatorFaultIsValidate(self):
        def validator(params, context):
            if params["timer"] > 45:
                raise ValueError("timer must be at most 45 minutes")

        preprocessor = Preprocessor(parser(), creator(), converter=CONVERT, validator=validator)
        self.assertIsInstance(preprocessor.preprocess("!add painted lot in 30"), PreprocessedCommand)
        with self.assertRaisesRegex(InvalidParametersError, "at most 45") as context:
            preprocessor.preprocess("!add painted lot in 50")
        self.assertEqual(context.exception.detail, FailureDetail.VALIDATE)

    def testCreateFaultIsValidate(self):
        preprocessor = Preprocessor(parser(), fail("declared tier does not match"), converter=CONVERT)
        with self.assertRaisesRegex(RejectedParametersError, "declared tier") as context:
            preprocessor.preprocess("!add painted lot in 30")
        self.assertEqual(context.exception.detail, FailureDetail.VALIDATE)

    def testCreateReturningGarbageIsInternal(self):
        preprocessor = Preprocessor(parser(), lambda params, context: params, converter=CONVERT)
        with self.assertRaises(MalformedCommandError) as context:
            preprocessor.preprocess("!add painted lot in 30")
        self.assertEqual(context.exception.detail, FailureDetail.INTERNAL)


class TestPreprocessedCommand(TestCase):
    """Execution semantics of PreprocessedCommand."""

    def make(self, execute=lambda params, context: params["gym"], format="{value}", repeatable=False):
        return PreprocessedCommand(
            "add", MappingProxyType({"gym": "painted lot"}), "ctx", execute=execute, format=format, repeatable=repeatable
        )

    def testExecuteYieldsResult(self):
        command = self.make()
        self.assertEqual(command.count, 0)
        result = command.execute()
        self.assertIsInstance(result, CommandResult)
        self.assertEqual(result.command, "add")
        self.assertEqual(result.value, "painted lot")
        self.assertEqual(result.format, "{value}")
        self.assertEqual(command.count, 1)

    def testExecuteReceivesParamsAndContext(self):
        seen = []
        self.make(execute=lambda params, context: seen.append((dict(params), context))).execute()
        self.assertEqual(seen, [({"gym": "painted lot"}, "ctx")])

    def testNonRepeatableSecondExecuteFails(self):
        command = self.make()
        command.execute()
        with self.assertRaisesRegex(NotRepeatableError, re.compile("cannot be repeated", re.I)) as context:
            command.execute()
        self.assertEqual(context.exception.detail, FailureDetail.EXECUTE)
        self.assertEqual(command.count, 1)

    def testRepeatableExecutesAgain(self):
        command = self.make(repeatable=True)
        first, second = command.execute(), command.execute()
        self.assertEqual(first.value, second.value)
        self.assertEqual(command.count, 2)

    def testExecutionFaultIsExecute(self):
        command = self.make(execute=fail("raid board is full"))
        with self.assertRaisesRegex(ExecutionError, "raid board is full") as context:
            command.execute()
        self.assertEqual(context.exception.detail, FailureDetail.EXECUTE)
        self.assertIsInstance(context.exception.__cause__, ValueError)

    def testFailedExecutionStillCounts(self):
        command = self.make(execute=fail("raid board is full"))
        with self.assertRaises(ExecutionError):
            command.execute()
        with self.assertRaises(NotRepeatableError):
            command.execute()

    def testFormatSelectorInspectsResult(self):
        def selector(params, context, value):
            return "{value} (with tier)" if "tier" in value else "{value}"

        command = self.make(execute=lambda params, context: {"gym": params["gym"]}, format=selector)
        self.assertEqual(command.execute().format, "{value}")

    def testFormatSelectorFaultIsFormat(self):
        executed = []
        command = self.make(execute=lambda params, context: executed.append(True), format=fail("no template"))
        with self.assertRaisesRegex(FormatSelectionError, "no template") as context:
            command.execute()
        self.assertEqual(context.exception.detail, FailureDetail.FORMAT)
        self.assertEqual(executed, [True])

    def testFormatSelectorMustReturnString(self):
        command = self.make(format=lambda params, context, value: 42)
        with self.assertRaises(FormatSelectionError):
            command.execute()

    def testInvalidConstruction(self):
        with self.assertRaises(TypeError):
            PreprocessedCommand("add", {}, execute="nope", format="{value}")
        with self.assertRaises(TypeError):
            PreprocessedCommand("add", {}, execute=lambda params, context: None, format=42)


if __name__ == "__main__":
    unittest.main()
