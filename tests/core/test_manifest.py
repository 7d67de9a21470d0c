import os
import tempfile
import unittest
from unittest.mock import mock_open, patch

from tronco.core.errors import ManifestParseError
from tronco.core.manifest import dependency_specs, manifest_field, read_manifest, workspace_patterns


class TestManifest(unittest.TestCase):

    def test_read_manifest(self):
        with patch("builtins.open", mock_open(read_data='{"name": "foo", "version": "1.0.0"}')):
            data = read_manifest("package.json")

        self.assertEqual(data["name"], "foo")

    def test_read_manifest_parse_errors(self):
        for content in ("{nope", "[1, 2]"):
            with self.subTest(content=content):
                with patch("builtins.open", mock_open(read_data=content)):
                    with self.assertRaises(ManifestParseError) as ctx:
                        read_manifest("/p/package.json")
                self.assertEqual(ctx.exception.code, "EJSONPARSE")
                self.assertEqual(ctx.exception.path, "/p/package.json")
                self.assertEqual(str(ctx.exception), "Failed to parse package.json")

    def test_read_manifest_bad_encoding(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "package.json")
            with open(path, "wb") as f:
                f.write(b'{"name": "\xff"}')

            with self.assertRaises(ManifestParseError) as ctx:
                read_manifest(path)

        self.assertEqual(ctx.exception.path, path)
        self.assertIn("utf-8", ctx.exception.detail)

    def test_missing_manifest_is_left_to_caller(self):
        with self.assertRaises(FileNotFoundError):
            read_manifest("/definitely/not/here/package.json")

    def test_manifest_field(self):
        data = {
            "repository": {"type": "git", "url": "git+https://github.com/a/b.git"},
            "maintainers": [{"name": "ana"}, {"name": "rui"}],
        }

        self.assertEqual(manifest_field(data, "repository.url"), "git+https://github.com/a/b.git")
        self.assertEqual(manifest_field(data, "maintainers[1].name"), "rui")
        self.assertIsNone(manifest_field(data, "maintainers[5].name"))
        self.assertEqual(manifest_field(data, "bugs.url", "n/a"), "n/a")

    def test_dependency_specs(self):
        package = {
            "peerDependencies": {"react": "^18.0.0", "react-dom": "^18.0.0"},
            "peerDependenciesMeta": {"react-dom": {"optional": True}},
            "dependencies": {"lodash": "^4.0.0", "react": "^18.2.0"},
            "devDependencies": {"jest": "^29.0.0"},
        }

        specs, types = dependency_specs(package, include_dev=False)

        self.assertEqual(list(specs), ["react", "react-dom", "lodash"])
        self.assertEqual(specs["react"], "^18.0.0")
        self.assertEqual(types, {"react": "peer", "react-dom": "peerOptional", "lodash": "prod"})

        specs, types = dependency_specs(package, include_dev=True)
        self.assertEqual(types["jest"], "dev")

    def test_workspace_patterns(self):
        self.assertEqual(workspace_patterns({"workspaces": ["packages/*"]}), ["packages/*"])
        self.assertEqual(workspace_patterns({"workspaces": {"packages": ["apps/*"]}}), ["apps/*"])
        self.assertEqual(workspace_patterns({}), [])


if __name__ == "__main__":
    unittest.main()
