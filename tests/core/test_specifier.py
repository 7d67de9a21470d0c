import os
import unittest

from tronco.core.model import PackageNode
from tronco.core.specifier import (
    dep_valid,
    parse_filter_term,
    parse_spec,
    satisfies,
    split_name_range,
)


class TestParseSpec(unittest.TestCase):

    def test_kinds(self):
        cases = {
            "^1.0.0": "range",
            "1.x || >=2.5.0": "range",
            "*": "range",
            "": "range",
            "latest": "tag",
            "next": "tag",
            "npm:real-name@^2.0.0": "alias",
            "file:../local": "directory",
            "link:../local": "directory",
            "./local": "directory",
            "git+ssh://git@github.com/a/b.git#v1": "git",
            "github:a/b": "git",
            "a/b#main": "git",
            "https://example.com/pkg.tgz": "remote",
        }
        for raw, kind in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(parse_spec(raw).type, kind)

    def test_alias_parts(self):
        spec = parse_spec("npm:@scope/real@~1.2.0")

        self.assertEqual(spec.name, "@scope/real")
        self.assertEqual(spec.range, "~1.2.0")
        self.assertEqual(parse_spec("npm:real").range, "*")

    def test_split_name_range(self):
        self.assertEqual(split_name_range("foo@^1"), ("foo", "^1"))
        self.assertEqual(split_name_range("@s/foo@1.x"), ("@s/foo", "1.x"))
        self.assertEqual(split_name_range("@s/foo"), ("@s/foo", ""))
        self.assertEqual(parse_filter_term("foo"), ("foo", None))


class TestSatisfies(unittest.TestCase):

    def test_ranges(self):
        self.assertTrue(satisfies("1.4.0", "^1.0.0"))
        self.assertFalse(satisfies("2.0.0", "^1.0.0"))
        self.assertTrue(satisfies("1.0.0", "*"))
        self.assertFalse(satisfies("", "*"))
        self.assertFalse(satisfies("not-a-version", "^1.0.0"))
        self.assertFalse(satisfies("1.0.0", "this is not a range"))


class TestDepValid(unittest.TestCase):

    def setUp(self):
        self.root = PackageNode(name="app", path=os.path.abspath("project"), is_root=True)

    def node(self, name, version, **kwargs):
        return PackageNode(name=name, version=version, path=os.path.join(self.root.path, "node_modules", name), **kwargs)

    def test_range(self):
        self.assertTrue(dep_valid(self.node("foo", "1.0.0"), parse_spec("^1.0.0"), self.root))
        self.assertFalse(dep_valid(self.node("foo", "1.0.0"), parse_spec("^2.0.0"), self.root))

    def test_alias_checks_real_name(self):
        aliased = self.node("foo", "2.1.0", package={"name": "real-name", "version": "2.1.0"})
        impostor = self.node("foo", "2.1.0", package={"name": "foo", "version": "2.1.0"})

        self.assertTrue(dep_valid(aliased, parse_spec("npm:real-name@^2.0.0"), self.root))
        self.assertFalse(dep_valid(impostor, parse_spec("npm:real-name@^2.0.0"), self.root))

    def test_directory_compares_link_target(self):
        target = PackageNode(name="local", version="0.0.1", path=os.path.join(self.root.path, "local"))
        link = self.node("local", "0.0.1", is_link=True, target=target)

        self.assertTrue(dep_valid(link, parse_spec("file:local"), self.root))
        self.assertFalse(dep_valid(link, parse_spec("file:elsewhere"), self.root))

    def test_unverifiable_specs_are_valid(self):
        foo = self.node("foo", "0.0.0")

        self.assertTrue(dep_valid(foo, parse_spec("latest"), self.root))
        self.assertTrue(dep_valid(foo, parse_spec("github:a/foo"), self.root))
        self.assertTrue(dep_valid(foo, parse_spec("https://example.com/foo.tgz"), self.root))


if __name__ == "__main__":
    unittest.main()
