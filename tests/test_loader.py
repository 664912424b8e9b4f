from __future__ import annotations

import unittest
from typing import Any, Dict, List

from _testutil import ensure_repo_on_path


def _declaration(steps: List[Dict[str, Any]], params: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "version": "2021.1",
        "project": {
            "description": "d",
            "params": params,
            "build_configurations": [{"name": "Quick Feedback", "steps": steps}],
        },
    }


class TestRenderInvocation(unittest.TestCase):
    def setUp(self) -> None:
        ensure_repo_on_path()

    def test_build_cache_scenario(self) -> None:
        from ciproject.loader import render_invocation
        from ciproject.models import BuildStep

        step = BuildStep(tasks="clean build", build_file="", extra_arguments="-s $buildCacheSetup")
        self.assertEqual(render_invocation(step, {"buildCacheSetup": "-Dscan"}), "clean build -s -Dscan")

    def test_build_file_override_and_no_substitutions(self) -> None:
        from ciproject.loader import render_command_line, render_invocation
        from ciproject.models import BuildStep

        step = BuildStep(tasks="check", build_file="release.gradle")
        self.assertEqual(render_invocation(step, {}), "check -b release.gradle")
        self.assertEqual(render_command_line(step, {}), "gradle check -b release.gradle")

    def test_unknown_parameter(self) -> None:
        from ciproject.errors import UnknownParameterError
        from ciproject.loader import render_invocation
        from ciproject.models import BuildStep

        step = BuildStep(tasks="clean build", extra_arguments="-s $undefinedParam")
        with self.assertRaises(UnknownParameterError) as ctx:
            render_invocation(step, {"buildCacheSetup": "-Dscan"})
        self.assertEqual(ctx.exception.name, "undefinedParam")

    def test_deterministic(self) -> None:
        from ciproject.loader import render_invocation
        from ciproject.models import BuildStep, ParameterSet

        params = ParameterSet.from_values({"a": "-Dscan", "b": "x $a"})
        step = BuildStep(tasks="build", extra_arguments="$b $a")
        first = render_invocation(step, params)
        for _ in range(5):
            self.assertEqual(render_invocation(step, params), first)
        self.assertEqual(first, "build x -Dscan -Dscan")

    def test_argv_split(self) -> None:
        from ciproject.loader import render_argv
        from ciproject.models import BuildStep

        step = BuildStep(tasks="build", extra_arguments="-Pmsg='$m'")
        self.assertEqual(render_argv(step, {"m": "hello world"}), ["gradle", "build", "-Pmsg=hello world"])


class TestResolveParameter(unittest.TestCase):
    def setUp(self) -> None:
        ensure_repo_on_path()

    def test_lookup_and_nested(self) -> None:
        from ciproject.loader import resolve_parameter

        params = {"a": "1", "b": "$a-$a"}
        self.assertEqual(resolve_parameter(params, "a"), "1")
        self.assertEqual(resolve_parameter(params, "b"), "1-1")

    def test_unknown(self) -> None:
        from ciproject.errors import UnknownParameterError, ValidationError
        from ciproject.loader import resolve_parameter

        with self.assertRaises(UnknownParameterError):
            resolve_parameter({}, "nope")
        # UnknownParameterError is a ValidationError.
        with self.assertRaises(ValidationError):
            resolve_parameter({"a": "$nope"}, "a")

    def test_cycle(self) -> None:
        from ciproject.errors import UnknownParameterError, ValidationError
        from ciproject.loader import resolve_parameter

        with self.assertRaises(ValidationError) as ctx:
            resolve_parameter({"a": "$b", "b": "$a"}, "a")
        self.assertNotIsInstance(ctx.exception, UnknownParameterError)
        self.assertIn("a -> b -> a", str(ctx.exception))


class TestLoad(unittest.TestCase):
    def setUp(self) -> None:
        ensure_repo_on_path()

    def test_embedded_declaration(self) -> None:
        from ciproject.loader import load, render_command_line

        d = load(env={})
        self.assertEqual(d.name, "_Root")
        self.assertEqual(d.version, "2021.1")
        self.assertEqual(d.description, "Build Cache use case for the Gradle Enterprise trial navigator")
        self.assertEqual(d.parameters["java8Home"], "/usr/lib/jvm/java-8-openjdk-amd64")

        self.assertEqual(len(d.build_configurations), 1)
        bc = d.build_configurations[0]
        self.assertEqual(bc.id, "QuickFeedback")
        self.assertEqual(bc.name, "Quick Feedback")
        self.assertEqual(len(bc.steps), 1)
        self.assertEqual(render_command_line(bc.steps[0], d.parameters), "gradle clean build -s --build-cache")

    def test_provisioned_value_used_in_render(self) -> None:
        from ciproject.loader import load, render_invocation

        d = load(provisioned={"buildCacheSetup": "-Dscan"}, env={})
        step = d.configuration("Quick Feedback").steps[0]
        self.assertEqual(render_invocation(step, d.parameters), "clean build -s -Dscan")

    def test_load_is_idempotent(self) -> None:
        from ciproject.loader import load

        self.assertEqual(load(env={}), load(env={}))
        self.assertNotEqual(load(env={}), load(provisioned={"buildCacheSetup": "x"}, env={}))

    def test_zero_steps_fails(self) -> None:
        from ciproject.errors import UnknownParameterError, ValidationError
        from ciproject.loader import load

        with self.assertRaises(ValidationError) as ctx:
            load(_declaration([], {}))
        self.assertNotIsInstance(ctx.exception, UnknownParameterError)
        self.assertIn("declares no steps", str(ctx.exception))

    def test_undefined_reference_fails(self) -> None:
        from ciproject.errors import UnknownParameterError
        from ciproject.loader import load

        steps = [{"tasks": "clean build", "extra_arguments": "-s $undefinedParam"}]
        with self.assertRaises(UnknownParameterError) as ctx:
            load(_declaration(steps, {"buildCacheSetup": "-Dscan"}))
        self.assertIn("build_configurations[0].steps[0].extra_arguments", str(ctx.exception))

    def test_succeeds_iff_steps_and_references_resolve(self) -> None:
        from ciproject.errors import ValidationError
        from ciproject.loader import load

        cases = [
            ([{"tasks": "build"}], {}, True),
            ([{"tasks": "build", "extra_arguments": "$a"}], {"a": "1"}, True),
            ([{"tasks": "build", "extra_arguments": "$a"}], {}, False),
            ([], {"a": "1"}, False),
        ]
        for steps, params, ok in cases:
            with self.subTest(steps=steps, params=params):
                if ok:
                    load(_declaration(steps, params))
                else:
                    with self.assertRaises(ValidationError):
                        load(_declaration(steps, params))

    def test_malformed_declaration(self) -> None:
        from ciproject.errors import ValidationError
        from ciproject.loader import load

        with self.assertRaises(ValidationError):
            load({"project": {"build_configurations": [{"name": "x", "steps": [{"tasks": "b", "bogus": 1}]}]}})
        with self.assertRaises(ValidationError):
            load({"project": {"build_configurations": [{"name": "x", "steps": [{"tasks": "   "}]}]}})

    def test_duplicate_configuration_ids(self) -> None:
        from ciproject.errors import ValidationError
        from ciproject.loader import load

        decl = {
            "project": {
                "build_configurations": [
                    {"name": "Quick Feedback", "steps": [{"tasks": "build"}]},
                    {"name": "quick-feedback", "steps": [{"tasks": "build"}]},
                ]
            }
        }
        with self.assertRaises(ValidationError):
            load(decl)

    def test_unknown_configuration_lookup(self) -> None:
        from ciproject.errors import ValidationError
        from ciproject.loader import load

        with self.assertRaises(ValidationError):
            load(env={}).configuration("Nope")

    def test_descriptor_is_immutable(self) -> None:
        import dataclasses

        from ciproject.loader import load

        d = load(env={})
        with self.assertRaises(dataclasses.FrozenInstanceError):
            d.description = "changed"  # type: ignore[misc]

    def test_describe_lists_step_references_and_parameter_specs(self) -> None:
        from ciproject.loader import load

        desc = load(env={}).describe()
        step = desc["build_configurations"][0]["steps"][0]
        self.assertEqual(step["references"], ["buildCacheSetup"])

        specs = {s["name"]: s for s in desc["parameter_specs"]}
        self.assertEqual(specs["buildCacheSetup"]["label"], "Build cache setup")
        self.assertFalse(specs["buildCacheSetup"]["literal"])
        self.assertEqual(specs["java8Home"]["display"], "HIDDEN")
        self.assertTrue(specs["java8Home"]["literal"])


class TestLiteralValues(unittest.TestCase):
    def setUp(self) -> None:
        ensure_repo_on_path()

    def test_provisioned_dollar_word_is_not_a_reference(self) -> None:
        from ciproject.loader import load, render_invocation

        d = load(provisioned={"buildCacheSetup": "-Dtoken=ab$cd"}, env={})
        step = d.configuration("QuickFeedback").steps[0]
        self.assertEqual(render_invocation(step, d.parameters), "clean build -s -Dtoken=ab$cd")

    def test_provisioned_double_dollar_is_kept(self) -> None:
        from ciproject.loader import load, render_invocation, resolve_parameter

        d = load(provisioned={"buildCacheSetup": "-Dpw=a$$b"}, env={})
        step = d.configuration("QuickFeedback").steps[0]
        self.assertEqual(resolve_parameter(d.parameters, "buildCacheSetup"), "-Dpw=a$$b")
        self.assertEqual(render_invocation(step, d.parameters), "clean build -s -Dpw=a$$b")

    def test_runtime_home_from_env_is_literal(self) -> None:
        from ciproject.loader import load, resolve_parameter

        d = load(env={"JDK_8_HOME": "/opt/$jdk"})
        self.assertEqual(resolve_parameter(d.parameters, "java8Home"), "/opt/$jdk")

    def test_declared_values_still_expand(self) -> None:
        from ciproject.loader import load, resolve_parameter

        decl = {
            "project": {
                "params": {"base": "-Dscan", "full": "$base --build-cache"},
                "build_configurations": [{"name": "B", "steps": [{"tasks": "build", "extra_arguments": "$full"}]}],
            }
        }
        d = load(decl, provisioned={"base": "$notaref"})
        self.assertEqual(resolve_parameter(d.parameters, "full"), "$notaref --build-cache")


class TestArgvQuoting(unittest.TestCase):
    def setUp(self) -> None:
        ensure_repo_on_path()

    def test_unbalanced_quote_is_a_validation_error(self) -> None:
        from ciproject.errors import ValidationError
        from ciproject.loader import render_argv
        from ciproject.models import BuildStep

        step = BuildStep(tasks="build", extra_arguments="-Downer=$owner")
        with self.assertRaises(ValidationError) as ctx:
            render_argv(step, {"owner": "O'Brien"}, where="steps[0].extra_arguments")
        self.assertIn("steps[0].extra_arguments", str(ctx.exception))

    def test_load_rejects_unsplittable_step(self) -> None:
        from ciproject.errors import ValidationError
        from ciproject.loader import load

        with self.assertRaises(ValidationError) as ctx:
            load(provisioned={"buildCacheSetup": "-Downer=O'Brien"}, env={})
        self.assertIn("build_configurations[0].steps[0].extra_arguments", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
