from __future__ import annotations

import unittest

from _testutil import ensure_repo_on_path


class TestRuntimeHome(unittest.TestCase):
    def setUp(self) -> None:
        ensure_repo_on_path()

    def test_env_lookup_wins(self) -> None:
        from ciproject.params import runtime_home_parameter

        name, value = runtime_home_parameter("linux", "8", env={"JDK_8_HOME": "/opt/jdk8"})
        self.assertEqual(name, "java8Home")
        self.assertEqual(value, "/opt/jdk8")

        _, value = runtime_home_parameter("linux", "8", env={"JAVA8_HOME": "/opt/java8"})
        self.assertEqual(value, "/opt/java8")

    def test_per_os_defaults(self) -> None:
        from ciproject.params import runtime_home_parameter

        _, linux = runtime_home_parameter("linux", "8", env={})
        _, mac = runtime_home_parameter("darwin", "11", env={})
        name, win = runtime_home_parameter("Windows", "17", env={})
        self.assertEqual(linux, "/usr/lib/jvm/java-8-openjdk-amd64")
        self.assertEqual(mac, "/Library/Java/JavaVirtualMachines/jdk-11.jdk/Contents/Home")
        self.assertEqual(name, "java17Home")
        self.assertTrue(win.endswith("jdk-17"))

    def test_unknown_os_and_bad_version(self) -> None:
        from ciproject.errors import ValidationError
        from ciproject.params import runtime_home_parameter

        with self.assertRaises(ValidationError):
            runtime_home_parameter("solaris", "8", env={})
        with self.assertRaises(ValidationError):
            runtime_home_parameter("linux", "1.8", env={})


class TestBuildParameterSet(unittest.TestCase):
    def setUp(self) -> None:
        ensure_repo_on_path()

    def test_provisioned_overrides_declared_and_keeps_metadata(self) -> None:
        from ciproject.params import build_parameter_set

        ps = build_parameter_set(
            {"buildCacheSetup": {"value": "--build-cache", "label": "Cache"}},
            provisioned={"buildCacheSetup": "-Dscan", "extra": "x"},
        )
        self.assertEqual(ps["buildCacheSetup"], "-Dscan")
        self.assertEqual(ps.spec("buildCacheSetup").label, "Cache")
        self.assertEqual(ps["extra"], "x")

    def test_derived_and_declared_conflict(self) -> None:
        from ciproject.errors import ValidationError
        from ciproject.params import build_parameter_set

        with self.assertRaises(ValidationError):
            build_parameter_set({"java8Home": "/x"}, derived={"java8Home": "/y"})

    def test_prompt_requires_value(self) -> None:
        from ciproject.errors import ValidationError
        from ciproject.params import build_parameter_set

        declared = {"releaseTag": {"display": "PROMPT"}}
        with self.assertRaises(ValidationError) as ctx:
            build_parameter_set(declared)
        self.assertIn("releaseTag", str(ctx.exception))

        ps = build_parameter_set(declared, provisioned={"releaseTag": "v1"})
        self.assertEqual(ps["releaseTag"], "v1")
        self.assertEqual(ps.spec("releaseTag").display, "PROMPT")

    def test_invalid_names_rejected(self) -> None:
        from ciproject.errors import ValidationError
        from ciproject.params import build_parameter_set

        for bad in ("1abc", "a-b", "a..b", ""):
            with self.assertRaises(ValidationError):
                build_parameter_set({bad: "v"})

    def test_parameter_set_is_read_only(self) -> None:
        from ciproject.params import build_parameter_set

        ps = build_parameter_set({"a": "1"})
        with self.assertRaises(TypeError):
            ps["a"] = "2"  # type: ignore[index]

    def test_provisioned_from_env(self) -> None:
        from ciproject.params import provisioned_from_env

        env = {"CIPROJECT_PARAM_buildCacheSetup": "-Dscan", "CIPROJECT_PARAM_": "ignored", "PATH": "/bin"}
        self.assertEqual(provisioned_from_env(env), {"buildCacheSetup": "-Dscan"})


if __name__ == "__main__":
    unittest.main()
