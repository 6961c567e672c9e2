"""
Commands module behavioral tests (resolution, built-ins, faults, entry points).

Scope
- Validate routing through a nested tree and residual argument delivery.
- Validate per-level flag parsing, -h/-help handling and global root flags.
- Validate the built-in help/flags/commands children and their shadowing.
- Validate configuration faults, routing faults and action error pass-through.

Conventions
- Test method names follow CamelCase per project convention.
- Help output is captured with a plain (colorless) rich Console over StringIO.
"""

from __future__ import annotations

import io
import unittest
from datetime import timedelta
from unittest import TestCase

from rich.console import Console

from subcmd import Group, FlagSet, command, run, main, synopsis
from subcmd.faults import (
    DuplicateCommandWarning,
    InvalidArgumentError,
    InvalidConfigurationError,
    InvalidFlagValueError,
    MissingCommandError,
    MissingFlagValueError,
    UnknownCommandError,
    UnknownFlagError,
    UnresolvedHelpTargetError,
)


class RecordingCommand:
    """Leaf command recording how it was declared and invoked."""

    def __init__(self, name):
        self.name = name
        self.flags = FlagSet(name)
        self.args = None
        self.context = None
        self.calls = 0
        self.declared = 0

    def __command__(self):
        self.declared += 1
        return self.flags, self.main

    def main(self, context, args):
        self.context = context
        self.args = args
        self.calls += 1

    def __commandhelp__(self):
        return (
            "First line of help output is used as synopsis.\n"
            "Rest of the text is displayed as documentation for the command.\n"
        )


class TreeFixture:
    """The jobs/job/db tree used by the routing and built-in tests."""

    def setUp(self):
        self.output = io.StringIO()
        self.console = Console(file=self.output, width=120, color_system=None, force_terminal=False)

        self.runLeaf = RecordingCommand("run")
        self.background = self.runLeaf.flags.boolean("background", False, "set to run in background")

        self.jobsList = RecordingCommand("list")
        self.listFormat = self.jobsList.flags.string("format", "json", "list output format")
        self.jobsSummary = RecordingCommand("summary")
        self.jobsSummary.flags.string("format", "json", "summary output format")
        self.jobs = Group("jobs", "manage jobs", self.jobsList, self.jobsSummary)

        self.jobPause = RecordingCommand("pause")
        self.pauseTimeout = self.jobPause.flags.duration("timeout", timedelta(0), "pause duration")
        self.jobResume = RecordingCommand("resume")
        self.jobResume.flags.duration("timeout", timedelta(0), "resume duration")
        self.jobCancel = RecordingCommand("cancel")
        self.jobCancel.flags.duration("after", timedelta(0), "cancellation delay")
        self.jobArchive = RecordingCommand("archive")
        self.jobDelete = RecordingCommand("delete")
        self.job = Group(
            "job", "manage single job",
            self.jobPause, self.jobResume, self.jobCancel, self.jobArchive, self.jobDelete,
        )

        self.dbGet = RecordingCommand("get")
        self.dbSet = RecordingCommand("set")
        self.dbDelete = RecordingCommand("delete")
        self.dbScan = RecordingCommand("scan")
        self.dbBackup = RecordingCommand("backup")
        self.db = Group("db", "manage database", self.dbGet, self.dbSet, self.dbDelete, self.dbScan, self.dbBackup)
        self.readonly = self.db.flags.boolean("readonly", False, "open the database read-only")

        self.commands = [self.runLeaf, self.jobs, self.job, self.db]
        self.leaves = [
            self.runLeaf, self.jobsList, self.jobsSummary,
            self.jobPause, self.jobResume, self.jobCancel, self.jobArchive, self.jobDelete,
            self.dbGet, self.dbSet, self.dbDelete, self.dbScan, self.dbBackup,
        ]

    def invoke(self, *args, **options):
        return run(None, self.commands, list(args), console=self.console, colorful=False, **options)

    def assertNothingRan(self):
        self.assertEqual([leaf.name for leaf in self.leaves if leaf.calls], [])


class TestResolution(TreeFixture, TestCase):
    """Routing through the jobs/job/db tree."""

    def testNestedLeafReceivesResidualArguments(self):
        self.assertIsNone(self.invoke("db", "scan", "db-scan-argument"))
        self.assertEqual(self.dbScan.args, ["db-scan-argument"])
        self.assertEqual(self.dbScan.calls, 1)
        self.assertIsNone(self.dbGet.args)

    def testLeafBooleanFlagIsBound(self):
        self.assertIsNone(self.invoke("run", "-background", "run-argument"))
        self.assertEqual(self.runLeaf.args, ["run-argument"])
        self.assertIs(self.background.value, True)

    def testRootHelpPrintsUsageWithoutRunningAnything(self):
        self.assertIsNone(self.invoke("-h"))
        self.assertNothingRan()
        text = self.output.getvalue()
        self.assertIn("Usage:", text)
        self.assertIn("manage database", text)

    def testLeafHelpDespiteOwnFlags(self):
        self.assertIsNone(self.invoke("run", "-h"))
        self.assertNothingRan()
        text = self.output.getvalue()
        self.assertIn("-background", text)
        self.assertIn("Rest of the text is displayed", text)

    def testLongHelpFlagInsideGroup(self):
        self.assertIsNone(self.invoke("job", "--help"))
        self.assertNothingRan()
        self.assertIn("pause", self.output.getvalue())

    def testHelpFlagAfterOtherFlags(self):
        self.assertIsNone(self.invoke("run", "-background", "-help"))
        self.assertNothingRan()

    def testDefaultsRetainedWhenNotGiven(self):
        self.invoke("jobs", "list")
        self.assertEqual(self.listFormat.value, "json")
        self.assertEqual(self.jobsList.args, [])

    def testDurationFlagParsed(self):
        self.invoke("job", "pause", "-timeout=1m30s", "job-id")
        self.assertEqual(self.pauseTimeout.value, timedelta(seconds=90))
        self.assertEqual(self.jobPause.args, ["job-id"])

    def testGroupFlagsParsedBeforeSubcommand(self):
        self.invoke("db", "-readonly", "get", "key")
        self.assertIs(self.readonly.value, True)
        self.assertEqual(self.dbGet.args, ["key"])

    def testGlobalFlagsRecognizedAtRoot(self):
        flags = FlagSet("prog")
        verbose = flags.boolean("verbose", False, "print more")
        self.invoke("-verbose", "run", flags=flags)
        self.assertIs(verbose.value, True)
        self.assertEqual(self.runLeaf.args, [])

    def testSubcommandNamesAfterLeafArePositionals(self):
        self.invoke("run", "db", "scan")
        self.assertEqual(self.runLeaf.args, ["db", "scan"])
        self.assertEqual(self.dbScan.calls, 0)

    def testFlagParsingStopsAtFirstPositional(self):
        self.invoke("run", "first", "-background")
        self.assertEqual(self.runLeaf.args, ["first", "-background"])
        self.assertIs(self.background.value, False)

    def testDoubleDashEndsFlags(self):
        self.invoke("run", "--", "-background")
        self.assertEqual(self.runLeaf.args, ["-background"])
        self.assertIs(self.background.value, False)

    def testEachCommandDeclaredOncePerRun(self):
        self.invoke("db", "scan", "x")
        self.assertEqual(self.dbScan.declared, 1)
        self.assertEqual(self.dbBackup.declared, 1)
        self.assertEqual(self.runLeaf.declared, 1)
        # groups off the path are declared, their children are not
        self.assertEqual(self.jobPause.declared, 0)

    def testContextReachesAction(self):
        context = object()
        run(context, self.commands, ["db", "get"], console=self.console)
        self.assertIs(self.dbGet.context, context)

    def testActionResultReturned(self):
        leaf = command(lambda context, args: ("done", args), name="echo")
        self.assertEqual(run(None, [leaf], ["echo", "a", "b"], console=self.console), ("done", ["a", "b"]))

    def testActionErrorPassesThroughUnchanged(self):
        error = RuntimeError("boom")

        def fail(context, args):
            raise error

        with self.assertRaises(RuntimeError) as caught:
            run(None, [command(fail)], ["fail"], console=self.console)
        self.assertIs(caught.exception, error)

    def testRepeatedRunsAreIndependent(self):
        self.invoke("db", "scan", "one")
        self.invoke("db", "scan", "two")
        self.assertEqual(self.dbScan.args, ["two"])
        self.assertEqual(self.dbScan.calls, 2)


class TestBuiltins(TreeFixture, TestCase):
    """Behavioral tests for the synthesized help/flags/commands children."""

    def testCommandsListsChildrenWithSynopses(self):
        self.invoke("commands")
        text = self.output.getvalue()
        for name in ("run", "jobs", "job", "db", "help", "flags", "commands"):
            self.assertIn(name, text)
        self.assertIn("manage single job", text)
        self.assertIn("First line of help output is used as synopsis.", text)
        self.assertNotIn("Rest of the text", text)

    def testNestedCommandsListing(self):
        self.invoke("db", "commands")
        text = self.output.getvalue()
        for name in ("get", "set", "delete", "scan", "backup"):
            self.assertIn(name, text)
        self.assertNotIn("summary", text)

    def testFlagsListsGroupFlags(self):
        self.invoke("db", "flags")
        text = self.output.getvalue()
        self.assertIn("-readonly", text)
        self.assertIn("open the database read-only", text)
        self.assertNothingRan()

    def testFlagsOnGroupWithoutFlags(self):
        self.invoke("job", "flags")
        self.assertIn("no flags", self.output.getvalue())

    def testHelpWithoutTargetDescribesGroup(self):
        self.invoke("db", "help")
        text = self.output.getvalue()
        self.assertIn("Usage:", text)
        self.assertIn("db", text)
        self.assertIn("scan", text)
        self.assertNothingRan()

    def testHelpWalksToNestedTarget(self):
        self.invoke("help", "job", "pause")
        text = self.output.getvalue()
        self.assertIn("job pause", text)
        self.assertIn("-timeout", text)
        self.assertIn("Rest of the text is displayed", text)
        self.assertNothingRan()

    def testHelpUnresolvedSegmentNamed(self):
        with self.assertRaises(UnresolvedHelpTargetError) as caught:
            self.invoke("help", "db", "nope")
        self.assertEqual(caught.exception.segment, "nope")
        self.assertIn("nope", str(caught.exception))

    def testHelpCannotDescendBelowLeaf(self):
        with self.assertRaises(UnresolvedHelpTargetError) as caught:
            self.invoke("help", "run", "extra")
        self.assertEqual(caught.exception.segment, "extra")

    def testUserChildShadowsBuiltin(self):
        helper = RecordingCommand("help")
        run(None, [helper, self.db], ["help", "db"], console=self.console)
        self.assertEqual(helper.args, ["db"])
        self.assertEqual(self.output.getvalue(), "")

    def testBuiltinsAbsentOnLeaves(self):
        self.invoke("run", "commands")
        self.assertEqual(self.runLeaf.args, ["commands"])


class TestGroups(TestCase):
    """Behavioral tests for Group construction, duplicates and fallbacks."""

    def setUp(self):
        self.console = Console(file=io.StringIO(), color_system=None, force_terminal=False)

    def testDuplicateSiblingFirstWins(self):
        first, second = RecordingCommand("dup"), RecordingCommand("dup")
        for _ in range(2):
            with self.assertWarns(DuplicateCommandWarning):
                run(None, [first, second], ["dup", "x"], console=self.console)
        self.assertEqual(first.calls, 2)
        self.assertEqual(second.calls, 0)

    def testMissingSubcommand(self):
        group = Group("db", "manage database", RecordingCommand("get"))
        with self.assertRaises(MissingCommandError):
            run(None, [group], ["db"], console=self.console)

    def testUnknownSubcommandSuggestsCloseMatch(self):
        group = Group("db", "manage database", RecordingCommand("scan"), RecordingCommand("set"))
        with self.assertRaises(UnknownCommandError) as caught:
            run(None, [group], ["db", "scna"], console=self.console)
        self.assertIn("scan", caught.exception.suggestions)
        self.assertIn("did you mean 'scan'", caught.exception.options["hint"])

    def testNoPartialNameMatching(self):
        with self.assertRaises(UnknownCommandError):
            run(None, [RecordingCommand("scan")], ["sc"], console=self.console)

    def testFallbackReceivesUnmatchedArguments(self):
        received = []
        group = Group("db", "manage database", RecordingCommand("get"), fallback=lambda context, args: received.append(args))
        run(None, [group], ["db", "other", "thing"], console=self.console)
        self.assertEqual(received, [["other", "thing"]])

    def testFallbackErrorsAreNotRewritten(self):
        def fallback(context, args):
            raise UnknownCommandError("custom", hint="custom hint")

        group = Group("db", "manage database", fallback=fallback)
        with self.assertRaises(UnknownCommandError) as caught:
            run(None, [group], ["db", "x"], console=self.console)
        self.assertEqual(caught.exception.options["hint"], "custom hint")

    def testGroupSynopsis(self):
        self.assertEqual(synopsis(Group("db", "manage database")), "manage database")

    def testGroupNamedByItsFlagSet(self):
        leaf = RecordingCommand("get")
        group = Group("db", "manage database", leaf, flags=FlagSet("store"))
        self.assertEqual(group.name, "store")
        run(None, [group], ["store", "get"], console=self.console)
        self.assertEqual(leaf.calls, 1)

    def testEmptyRootCommandList(self):
        with self.assertRaises(MissingCommandError):
            run(None, [], [], console=self.console)


class TestConfiguration(TestCase):
    """Behavioral tests for configuration and argument faults."""

    def setUp(self):
        self.console = Console(file=io.StringIO(), color_system=None, force_terminal=False)

    def testNoneCommandsRejected(self):
        with self.assertRaises(InvalidArgumentError):
            run(None, None, [], console=self.console)

    def testStringArgumentsRejected(self):
        with self.assertRaises(InvalidArgumentError):
            run(None, [RecordingCommand("run")], "run -background", console=self.console)

    def testNoneArgumentsMeanEmpty(self):
        leaf = RecordingCommand("run")
        with self.assertRaises(MissingCommandError):
            run(None, [leaf], None, console=self.console)
        self.assertEqual(leaf.calls, 0)

    def testEmptyCommandNameRejected(self):
        with self.assertRaises(InvalidConfigurationError):
            run(None, [RecordingCommand("")], ["x"], console=self.console)

    def testEmptyGroupNameRejected(self):
        with self.assertRaises(InvalidConfigurationError):
            run(None, [Group("", "nameless")], [], console=self.console)

    def testNonCommandRejected(self):
        with self.assertRaises(InvalidConfigurationError):
            run(None, [object()], [], console=self.console)

    def testMalformedDeclarationRejected(self):
        class Broken:
            def __command__(self):
                return FlagSet("broken")

        with self.assertRaises(InvalidConfigurationError):
            run(None, [Broken()], ["broken"], console=self.console)

    def testUncallableActionRejected(self):
        class Broken:
            def __command__(self):
                return FlagSet("broken"), "not callable"

        with self.assertRaises(InvalidConfigurationError):
            run(None, [Broken()], [], console=self.console)

    def testUnknownFlagAbortsBeforeAction(self):
        leaf = RecordingCommand("run")
        with self.assertRaises(UnknownFlagError):
            run(None, [leaf], ["run", "-nope"], console=self.console)
        self.assertEqual(leaf.calls, 0)

    def testMissingFlagValue(self):
        leaf = RecordingCommand("list")
        leaf.flags.string("format", "json", "output format")
        with self.assertRaises(MissingFlagValueError):
            run(None, [leaf], ["list", "-format"], console=self.console)

    def testInvalidFlagValue(self):
        leaf = RecordingCommand("pause")
        leaf.flags.duration("timeout", timedelta(0), "pause duration")
        with self.assertRaises(InvalidFlagValueError):
            run(None, [leaf], ["pause", "-timeout", "soon"], console=self.console)


class TestDecorator(TestCase):
    """Behavioral tests for the command() decorator."""

    def testNameFromFunctionAndHelpFromDocstring(self):
        @command
        def db_backup(context, args):
            """Back up the database.

            Writes a snapshot next to the data directory.
            """
            return args

        self.assertEqual(db_backup.name, "db-backup")
        self.assertEqual(synopsis(db_backup), "Back up the database.")
        self.assertEqual(db_backup(None, ["x"]), ["x"])

    def testExplicitNameAndHelp(self):
        @command("get", help="Read one key.")
        def fetch(context, args):
            pass

        self.assertEqual(fetch.name, "get")
        self.assertEqual(fetch.__commandhelp__(), "Read one key.")

    def testDecoratedFlagsAreParsed(self):
        @command
        def scan(context, args):
            return limit.value, args

        limit = scan.flags.integer("limit", 100, "maximum number of rows")
        console = Console(file=io.StringIO(), color_system=None, force_terminal=False)
        self.assertEqual(run(None, [scan], ["scan", "-limit", "0x10", "table"], console=console), (16, ["table"]))

    def testNonCallableRejected(self):
        with self.assertRaises(TypeError):
            command(42)


class TestMain(TestCase):
    """Behavioral tests for the process entry point."""

    def testFaultPrintedAndExitStatusOne(self):
        stderr = io.StringIO()
        console = Console(file=stderr, width=120, color_system=None, force_terminal=False)
        with self.assertRaises(SystemExit) as caught:
            main([RecordingCommand("run")], ["nope"], console=console, colorful=False)
        self.assertEqual(caught.exception.code, 1)
        self.assertIn("unknown command 'nope'", stderr.getvalue())

    def testSuccessReturnsActionResult(self):
        leaf = command(lambda context, args: context, name="echo")
        console = Console(file=io.StringIO(), color_system=None, force_terminal=False)
        self.assertEqual(main([leaf], ["echo"], context="ctx", console=console), "ctx")

    def testHelpIsNotAFailure(self):
        console = Console(file=io.StringIO(), color_system=None, force_terminal=False)
        self.assertIsNone(main([RecordingCommand("run")], ["-h"], console=console))


if __name__ == "__main__":
    unittest.main()
