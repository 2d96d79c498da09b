import json
import os
import subprocess
import tempfile
import unittest
from unittest.mock import patch
from auditchain.__main__ import build_parser, main

REPORT = {
    "advisories": {"1": {"module_name": "minimist", "severity": "low", "url": "https://x/minimist"}},
    "vulnerabilities": {"lodash": {"severity": "high", "via": [{"url": "https://x/lodash"}]}},
}
TREE = {
    "name": "app",
    "dependencies": {
        "mkdirp": {"version": "0.5.1", "dependencies": {"minimist": {"version": "0.0.8"}}},
        "webpack": {"version": "4.0.0", "dependencies": {"lodash": {"version": "4.17.0"}}},
    },
}


class TestCli(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.audit = self._write("npm-audit.json", REPORT)
        self.tree = self._write("npm-tree.json", TREE)
        self.csv = os.path.join(self.tmp.name, "out.csv")

    def _write(self, name, data):
        path = os.path.join(self.tmp.name, name)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        return path

    def test_parser_defaults(self):
        args = build_parser().parse_args([])
        self.assertTrue(args.latest)
        self.assertFalse(args.tui)
        self.assertEqual(args.project_dir, ".")

    def test_writes_csv(self):
        code = main(["--audit", self.audit, "--tree", self.tree, "--csv", self.csv, "--no-latest", "--summary"])

        self.assertEqual(code, 0)
        with open(self.csv, encoding="utf-8") as f:
            lines = f.read().splitlines()
        self.assertEqual(lines[1], '"minimist","0.0.8","mkdirp -> minimist","low","https://x/minimist"')
        self.assertEqual(lines[2], '"lodash","4.17.0","webpack -> lodash","high","https://x/lodash"')

    def test_no_vulnerabilities_still_writes_header(self):
        empty = self._write("empty.json", {})

        code = main(["--audit", empty, "--tree", self.tree, "--csv", self.csv])

        self.assertEqual(code, 0)
        with open(self.csv, encoding="utf-8") as f:
            self.assertEqual(f.read(), "Vulnerable Package,Version,Parent Chain,Severity,Advisory URL,Latest Version\n")

    def test_missing_audit_file(self):
        code = main(["--audit", os.path.join(self.tmp.name, "nope.json"), "--tree", self.tree])
        self.assertEqual(code, 2)

    @patch("auditchain.__main__.enrich_latest_versions")
    def test_enrichment_runs_by_default(self, mock_enrich):
        async def fake(rows):
            for row in rows:
                row.latest_version = "9.9.9"
            return rows

        mock_enrich.side_effect = fake

        code = main(["--audit", self.audit, "--tree", self.tree, "--csv", self.csv])

        self.assertEqual(code, 0)
        mock_enrich.assert_called_once()
        with open(self.csv, encoding="utf-8") as f:
            self.assertTrue(f.read().splitlines()[1].endswith(',"9.9.9"'))

    def test_no_project_to_run_npm_in(self):
        self.assertEqual(main(["--audit", self.audit, "--project", self.tmp.name]), 2)
        self.assertEqual(main(["--project", os.path.join(self.tmp.name, "missing")]), 2)

    @patch("auditchain.managers.npm.subprocess.run")
    def test_npm_unavailable(self, mock_run):
        self._write("package.json", {"name": "app"})
        mock_run.side_effect = FileNotFoundError("npm")

        self.assertEqual(main(["--project", self.tmp.name]), 2)

    @patch("auditchain.managers.npm.subprocess.run")
    def test_documents_generated_by_npm(self, mock_run):
        self._write("package.json", {"name": "app"})

        def fake_npm(cmd, **kwargs):
            data = REPORT if "audit" in cmd else TREE
            return subprocess.CompletedProcess(args=cmd, returncode=1, stdout=json.dumps(data), stderr="")

        mock_run.side_effect = fake_npm

        code = main(["--project", self.tmp.name, "--csv", self.csv, "--no-latest"])

        self.assertEqual(code, 0)
        commands = [c.args[0] for c in mock_run.call_args_list]
        self.assertEqual(commands, [["npm", "audit", "--json"], ["npm", "ls", "--all", "--json"]])
        self.assertTrue(all(c.kwargs["cwd"] == self.tmp.name for c in mock_run.call_args_list))
        with open(self.csv, encoding="utf-8") as f:
            self.assertEqual(len(f.read().splitlines()), 3)
