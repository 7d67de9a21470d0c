import json
import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from fs_fixture import FixtureTestCase, manifest
from tronco.config import LsOptions
from tronco.core.ls import ls
from tronco.core.presenter import json_tree, render_human, render_json, render_parseable


class TestPresenter(FixtureTestCase):

    def listing(self, layout, terms=(), **options):
        self.write(layout)
        options.setdefault("prefix", self.root)
        return ls(LsOptions(**options), terms)

    def shared_layout(self):
        return {
            "package.json": manifest("app", dependencies={"a": "^1.0.0", "b": "^1.0.0"}),
            "node_modules/a/package.json": manifest(
                "a", dependencies={"c": "^1.0.0"}, description="The a package"),
            "node_modules/b/package.json": manifest("b", dependencies={"c": "^1.0.0"}),
            "node_modules/c/package.json": manifest(
                "c", "1.2.0", _resolved="https://registry.npmjs.org/c/-/c-1.2.0.tgz"),
        }

    def broken_layout(self):
        return {
            "package.json": manifest("test-npm-ls", dependencies={"foo": "^2.0.0", "ipsum": "^1.0.0"}),
            "node_modules/foo/package.json": manifest("foo"),
            "node_modules/lorem/package.json": manifest("lorem"),
        }

    # --- human ---

    def test_human_tree(self):
        result = self.listing(self.shared_layout(), all=True)

        output = render_human(result.tree, result.view, color=False)
        lines = output.splitlines()

        self.assertEqual(lines[0], f"app@1.0.0 {self.root}")
        self.assertIn("a@1.0.0", lines[1])
        self.assertIn("c@1.2.0", lines[2])
        self.assertTrue(any(line.endswith("c@1.2.0 deduped") for line in lines))
        self.assertNotIn("\x1b[", output)

    def test_human_markers(self):
        result = self.listing(self.broken_layout())

        output = render_human(result.tree, result.view, color=False)

        self.assertIn('foo@1.0.0 invalid: "^2.0.0" from the root project', output)
        self.assertIn("UNMET DEPENDENCY ipsum@^1.0.0", output)
        self.assertIn("lorem@1.0.0 extraneous", output)

    def test_human_unmet_optional(self):
        result = self.listing({"package.json": manifest("app", optionalDependencies={"fsevents": "^2.0.0"})})
        self.assertIn("UNMET OPTIONAL DEPENDENCY fsevents@^2.0.0", render_human(result.tree, result.view, color=False))

    def test_human_empty_location(self):
        result = ls(LsOptions(prefix=self.path("nowhere")))

        lines = render_human(result.tree, result.view, color=False).splitlines()

        self.assertEqual(lines[0], self.path("nowhere"))
        self.assertTrue(lines[1].endswith("(empty)"))

    def test_human_long_description(self):
        result = self.listing(self.shared_layout())

        output = render_human(result.tree, result.view, color=False, long=True)

        self.assertIn("The a package", output)

    def test_human_link(self):
        layout = {
            "package.json": manifest("app", dependencies={"local": "file:local"}),
            "local/package.json": manifest("local", "0.0.1"),
        }
        self.write(layout)
        self.symlink("node_modules/local", "local")

        result = ls(LsOptions(prefix=self.root))

        self.assertIn("local@0.0.1 -> ../local", render_human(result.tree, result.view, color=False))

    def test_human_colors(self):
        result = self.listing(self.broken_layout())

        self.assertIn("\x1b[", render_human(result.tree, result.view, color=True))

    # --- parseable ---

    def test_parseable(self):
        result = self.listing(self.shared_layout(), all=True)

        lines = render_parseable(result.tree, result.view).splitlines()

        self.assertEqual(lines, [
            f"{self.root}:app@1.0.0",
            f"{self.path('node_modules', 'a')}:a@1.0.0",
            f"{self.path('node_modules', 'c')}:c@1.2.0",
            f"{self.path('node_modules', 'b')}:b@1.0.0",
        ])

    def test_parseable_long_flags(self):
        result = self.listing(self.broken_layout())

        lines = render_parseable(result.tree, result.view, long=True).splitlines()

        self.assertIn(f"{self.path('node_modules', 'foo')}:foo@1.0.0:INVALID", lines)
        self.assertIn(f"{self.path('node_modules', 'lorem')}:lorem@1.0.0:EXTRANEOUS", lines)

    # --- json ---

    def test_json_shape(self):
        result = self.listing(self.broken_layout())

        data = json_tree(result.tree, result.view, result.problems)

        foo_problem = f"invalid: foo@1.0.0 {self.path('node_modules', 'foo')}"
        missing_problem = "missing: ipsum@^1.0.0, required by test-npm-ls@1.0.0"
        lorem_problem = f"extraneous: lorem@1.0.0 {self.path('node_modules', 'lorem')}"
        self.assertEqual(data, {
            "name": "test-npm-ls",
            "version": "1.0.0",
            "dependencies": {
                "foo": {"version": "1.0.0", "invalid": True, "problems": [foo_problem]},
                "ipsum": {"required": "^1.0.0", "missing": True, "problems": [missing_problem]},
                "lorem": {"version": "1.0.0", "extraneous": True, "problems": [lorem_problem]},
            },
            "problems": [foo_problem, missing_problem, lorem_problem],
        })

    def test_json_deduped_and_resolved(self):
        result = self.listing(self.shared_layout(), all=True)

        data = json.loads(render_json(result.tree, result.view, result.problems))

        tgz = "https://registry.npmjs.org/c/-/c-1.2.0.tgz"
        self.assertEqual(data["dependencies"]["a"]["dependencies"]["c"], {"version": "1.2.0", "resolved": tgz})
        self.assertEqual(data["dependencies"]["b"]["dependencies"]["c"], {"version": "1.2.0", "resolved": tgz})
        self.assertNotIn("problems", data)

    def test_json_missing_optional_is_empty(self):
        result = self.listing({"package.json": manifest("app", optionalDependencies={"fsevents": "^2.0.0"})})

        data = json_tree(result.tree, result.view, result.problems)

        self.assertEqual(data["dependencies"], {"fsevents": {}})

    def test_json_parse_error(self):
        result = self.listing({"package.json": "{\"name\": "})

        data = json_tree(result.tree, result.view, result.problems)

        self.assertEqual(data, {
            "invalid": True,
            "problems": [f"error in {self.root}: Failed to parse root package.json"],
        })

    def test_json_long(self):
        result = self.listing(self.shared_layout())

        data = json_tree(result.tree, result.view, result.problems, long=True)

        a = data["dependencies"]["a"]
        self.assertEqual(a["name"], "a")
        self.assertEqual(a["_id"], "a@1.0.0")
        self.assertEqual(a["path"], self.path("node_modules", "a"))
        self.assertEqual(a["description"], "The a package")
        self.assertNotIn("dev", a)

    def test_json_global_root_has_no_name(self):
        global_dir = os.path.join(self.tmp, "lib", "node_modules")
        self.write({"foo/package.json": manifest("foo")}, base=global_dir)

        result = ls(LsOptions(global_=True, global_dir=global_dir))
        data = json_tree(result.tree, result.view, result.problems)

        self.assertEqual(data, {"dependencies": {"foo": {"version": "1.0.0"}}})


if __name__ == "__main__":
    unittest.main()
