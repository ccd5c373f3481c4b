"""
Action tree construction and finalization tests.

Scope
- Validate attach rules (empty trigger, re-attachment, unreachable, duplicates, frozen).
- Validate finalize(): consume normalization, cached paths, inherited help
  configuration, synthetic help injection and double-finalize detection.
- Validate the action(...) factory and the read-only surface of Action.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (Action, action, State, faults).
"""
import unittest
import warnings
from unittest import TestCase

from argotree import (
    Action,
    State,
    action,
    HELP_DESCR,
    EmptyTriggerError,
    ActionAlreadyAssignedError,
    DuplicatedSubActionError,
    UnreachableActionError,
    FrozenActionError,
    DoubleFinalizeError,
    TooFewArgsError,
    SurplusArgNamesWarning,
    FaultCode,
)


class TestAddSubAction(TestCase):
    """Behavioral tests for attaching sub-actions."""

    def testSubActionsKeepAttachOrder(self):
        root = Action("root")
        sub2 = Action("sub2")
        sub2.add_subaction(Action("subsub1"))
        sub2.add_subaction(Action("subsub2"))
        root.add_subaction(Action("sub1"))
        root.add_subaction(sub2)

        self.assertEqual([x.trigger for x in root.subactions], ["sub1", "sub2"])
        self.assertEqual(
            [x.trigger for x in root.get_subaction("sub2").subactions],
            ["subsub1", "subsub2"],
        )

    def testGetSubAction(self):
        root = Action("root")
        sub2 = root.add_subaction(Action("sub2"))
        sub2.add_subaction(Action("subsub1"))
        root.add_subaction(Action("sub1"))

        self.assertEqual(root.get_subaction("sub1").trigger, "sub1")
        self.assertEqual(root.get_subaction("sub2").get_subaction("subsub1").trigger, "subsub1")
        self.assertIsNone(root.get_subaction("none"))
        self.assertIsNone(root.get_subaction("sub1").get_subaction("none"))

    def testAttachSetsParentAndPath(self):
        root = Action("root")
        sub = Action("sub", parent=root)

        self.assertIs(sub.parent, root)
        self.assertIs(sub.root, root)
        self.assertEqual(sub.path, "root sub")
        self.assertEqual(Action("test").path, "test")
        self.assertEqual(Action("").path, "")

    def testEmptyTriggerRaises(self):
        with self.assertRaises(EmptyTriggerError) as context:
            Action("act").add_subaction(Action(""))
        self.assertIn("empty trigger", str(context.exception))
        self.assertEqual(context.exception.code, FaultCode.EMPTY_TRIGGER)

    def testAlreadyAssignedRaises(self):
        root = Action("arg")
        sub = Action("sub", parent=root)

        with self.assertRaises(ActionAlreadyAssignedError) as context:
            Action("new").add_subaction(sub)
        self.assertEqual(context.exception.assigned_path, "arg sub")
        self.assertIn("arg sub", str(context.exception))
        self.assertIs(sub.parent, root)

    def testAlreadyAssignedForVictimOfParseFault(self):
        root = Action("arg")
        Action("sub", parent=root, min_consume=1)
        root.finalize()

        with self.assertRaises(TooFewArgsError) as context:
            root.parse(State(), ["arg", "sub"])
        victim = context.exception.victim

        with self.assertRaises(ActionAlreadyAssignedError) as context:
            Action("new").add_subaction(victim)
        self.assertEqual(context.exception.assigned_path, "arg sub")

    def testUnreachableRaises(self):
        greedy = Action("test", max_consume=-1)

        with self.assertRaises(UnreachableActionError) as context:
            greedy.add_subaction(Action("arg1"))
        self.assertEqual(context.exception.path, "test arg1")
        self.assertEqual(greedy.subactions, ())

    def testDuplicatedSubActionRaises(self):
        root = Action("root")
        first = root.add_subaction(Action("sub1"))

        with self.assertRaises(DuplicatedSubActionError) as context:
            root.add_subaction(Action("sub1"))
        self.assertEqual(context.exception.trigger, "sub1")
        self.assertIn("sub1", str(context.exception))
        self.assertIs(root.get_subaction("sub1"), first)
        self.assertEqual(len(root.subactions), 1)

    def testFrozenParentRaises(self):
        root = Action("root")
        root.finalize()

        with self.assertRaises(FrozenActionError):
            root.add_subaction(Action("late"))

    def testInvalidFieldsRaise(self):
        with self.assertRaises(TypeError):
            Action(3)
        with self.assertRaises(TypeError):
            Action("x", min_consume="1")
        with self.assertRaises(TypeError):
            Action("x", max_consume=True)
        with self.assertRaises(TypeError):
            Action("x", arg_names="src")
        with self.assertRaises(TypeError):
            Action("x", handler="not callable")
        with self.assertRaises(TypeError):
            Action("x", parent="root")
        with self.assertRaises(TypeError):
            Action("root").add_subaction("sub")

    def testArgNamesAcceptAnyIterableOfStrings(self):
        act = Action("cp", min_consume=2, arg_names=(name for name in ["SRC", "DST"]))
        self.assertEqual(act.arg_names, ("SRC", "DST"))
        with self.assertRaises(TypeError):
            Action("cp", arg_names=["SRC", 2])

    def testReadOnlySurface(self):
        act = Action("x", min_consume=1)
        with self.assertRaises(AttributeError):
            act.trigger = "y"
        with self.assertRaises(AttributeError):
            act.min_consume = 3
        self.assertIn("trigger='x'", repr(act))


class TestFinalize(TestCase):
    """Behavioral tests for finalize()."""

    def testConsumeNormalization(self):
        cases = [
            (dict(min_consume=-1), (0, 0)),
            (dict(min_consume=2), (2, 2)),
            (dict(min_consume=2, max_consume=1), (2, 2)),
            (dict(min_consume=2, max_consume=4), (2, 4)),
            (dict(max_consume=-1), (0, -1)),
            (dict(min_consume=-3, max_consume=-5), (0, -5)),
        ]
        for options, expected in cases:
            with self.subTest(**options):
                act = Action("test", **options)
                act.finalize()
                self.assertEqual((act.min_consume, act.max_consume), expected)
                self.assertGreaterEqual(act.min_consume, 0)
                self.assertTrue(act.max_consume < 0 or act.max_consume >= act.min_consume)

    def testFinalizeIsTransitive(self):
        root = Action("root")
        sub = Action("sub", parent=root, min_consume=-2)
        leaf = Action("leaf", parent=sub)
        root.finalize()

        for act in (root, sub, leaf):
            self.assertTrue(act.finalized)
        self.assertEqual(sub.min_consume, 0)

    def testPathsAreRecomputed(self):
        sub = Action("sub")
        leaf = Action("leaf", parent=sub)
        self.assertEqual(leaf.path, "sub leaf")

        root = Action("root")
        root.add_subaction(sub)
        root.finalize()
        self.assertEqual(leaf.path, "root sub leaf")

    def testDoubleFinalizeRaises(self):
        act = Action("arg")
        act.add_subaction(Action("sub"))
        act.finalize()

        with self.assertRaises(DoubleFinalizeError) as context:
            act.finalize()
        self.assertEqual(context.exception.victim.trigger, "arg")
        self.assertIn(context.exception.victim.path, str(context.exception))

    def testFinalizedSubtreeCannotBeFinalizedAgain(self):
        act = Action("arg", min_consume=1)
        act.finalize()

        new = Action("new")
        new.add_subaction(act)
        with self.assertRaises(DoubleFinalizeError) as context:
            new.finalize()
        self.assertEqual(context.exception.victim.trigger, "arg")
        self.assertTrue(new.finalized)

    def testEmptyTriggerRaises(self):
        with self.assertRaises(EmptyTriggerError) as context:
            Action("", handler=lambda state: None).finalize()
        self.assertIn("empty trigger", str(context.exception))

    def testHelpInjectedWhenTriggerAloneIdentifiesAction(self):
        root = Action("root")
        root.finalize()

        help = root.get_subaction("help")
        self.assertIsNotNone(help)
        self.assertIs(root.subactions[-1], help)
        self.assertEqual(help.max_consume, 1)
        self.assertEqual(help.short_descr, HELP_DESCR)
        self.assertTrue(help.disable_help)
        self.assertTrue(help.finalized)
        self.assertEqual(help.path, "root help")
        self.assertIsNone(help.get_subaction("help"))

    def testHelpNotInjectedWithConsumeWindow(self):
        for options in (dict(min_consume=1), dict(max_consume=2), dict(max_consume=-1)):
            with self.subTest(**options):
                act = Action("cp", **options)
                act.finalize()
                self.assertIsNone(act.get_subaction("help"))

    def testHelpNotInjectedWhenDisabled(self):
        act = Action("root", disable_help=True)
        sub = Action("sub", parent=act)
        act.finalize()

        self.assertIsNone(act.get_subaction("help"))
        self.assertIsNotNone(sub.get_subaction("help"))

    def testUserHelpSubActionWins(self):
        root = Action("root")
        custom = Action("help", parent=root, short_descr="custom help")
        root.finalize()

        self.assertIs(root.get_subaction("help"), custom)
        self.assertEqual(len(root.subactions), 1)

    def testEmptyHelpTriggerPropagates(self):
        with self.assertRaises(EmptyTriggerError):
            Action("root", help_trigger="").finalize()

    def testHelpConfigurationIsInherited(self):
        def generator(act):
            return "custom help of %s\n" % act.path

        root = Action("root", help_trigger="aide", help_generator=generator, colorful=False)
        sub = Action("sub", parent=root)
        override = Action("other", parent=root, help_trigger="?")
        root.finalize()

        self.assertEqual(sub.help_trigger, "aide")
        self.assertIs(sub.help_generator, generator)
        self.assertIsNotNone(sub.get_subaction("aide"))
        self.assertIsNotNone(override.get_subaction("?"))
        self.assertIsNone(override.get_subaction("aide"))
        self.assertEqual(sub.help(), "custom help of root sub\n")
        self.assertFalse(sub.colorful)

    def testRootDefaults(self):
        root = Action("root")
        root.finalize()

        self.assertEqual(root.help_trigger, "help")
        self.assertIsNotNone(root.help_generator)
        self.assertFalse(root.shell)
        self.assertFalse(root.fancy)
        self.assertFalse(root.colorful)
        self.assertIsNone(root.parent)

    def testSurplusArgNamesWarns(self):
        act = Action("cp", min_consume=1, arg_names=("SRC", "DST"))
        with self.assertWarns(SurplusArgNamesWarning) as context:
            act.finalize()
        self.assertEqual(context.warning.surplus, ("DST",))
        self.assertTrue(act.finalized)

    def testGreedyArgNamesDoNotWarn(self):
        act = Action("echo", max_consume=-1, arg_names=("A", "B", "C"))
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            act.finalize()


class TestActionFactory(TestCase):
    """Behavioral tests for the action(...) factory and Action.action(...)."""

    def testDecoratorUsesNameAndDocstring(self):
        @action(min_consume=1)
        def push(state):
            """Push a value.

            The value is appended to the stack.
            """

        self.assertEqual(push.trigger, "push")
        self.assertEqual(push.short_descr, "Push a value.")
        self.assertIn("appended to the stack", push.long_descr)
        self.assertEqual(push.min_consume, 1)
        self.assertIsNotNone(push.handler)

    def testDirectFormWithOverrides(self):
        def handler(state):
            pass

        act = action(handler, trigger="run", short_descr="run it")
        self.assertEqual(act.trigger, "run")
        self.assertEqual(act.short_descr, "run it")
        self.assertIs(act.handler, handler)

    def testMethodAttachesUnderParent(self):
        root = Action("git")

        @root.action
        def status(state):
            state.write("clean")

        self.assertIs(status.parent, root)
        self.assertIs(root.get_subaction("status"), status)

    def testRejectsNonCallable(self):
        with self.assertRaises(TypeError):
            action("status")


if __name__ == "__main__":
    unittest.main()
