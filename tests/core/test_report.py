import unittest
from unittest.mock import patch, mock_open
from auditchain.core.model import DiscoveryRecord, UpgradeGroup
from auditchain.core.report import analyze_vulnerabilities, minimal_upgrade_summary, to_csv, write_csv


class TestReport(unittest.TestCase):

    def setUp(self):
        self.rows = [
            DiscoveryRecord("lodash", "4.17.0", ["a", "lodash"], "high", "https://x/1", "4.17.21"),
            DiscoveryRecord('we"ird', "1.0.0", ["b", 'we"ird'], "low", ""),
        ]

    def test_csv_quotes_every_value(self):
        text = to_csv(self.rows)

        self.assertEqual(
            text.splitlines(),
            [
                "Vulnerable Package,Version,Parent Chain,Severity,Advisory URL",
                '"lodash","4.17.0","a -> lodash","high","https://x/1"',
                '"we""ird","1.0.0","b -> we""ird","low",""',
            ],
        )

    def test_csv_latest_column(self):
        lines = to_csv(self.rows[:1], include_latest=True).splitlines()
        self.assertTrue(lines[0].endswith(",Latest Version"))
        self.assertTrue(lines[1].endswith(',"4.17.21"'))

    def test_csv_empty_has_header_only(self):
        self.assertEqual(to_csv([]), "Vulnerable Package,Version,Parent Chain,Severity,Advisory URL\n")

    def test_write_csv(self):
        m = mock_open()
        with patch("builtins.open", m):
            write_csv(self.rows, "out.csv")
        m.assert_called_once_with("out.csv", "w", encoding="utf-8", newline="")
        m().write.assert_called_once_with(to_csv(self.rows))

    def test_upgrade_summary(self):
        groups = [UpgradeGroup("webpack", ["lodash", "minimist"]), UpgradeGroup("jest", ["ws"])]

        self.assertEqual(
            minimal_upgrade_summary(groups),
            "Upgrade the following parent libraries to fix vulnerabilities:\n"
            "- webpack (affects: lodash, minimist)\n"
            "- jest (affects: ws)",
        )
        self.assertEqual(minimal_upgrade_summary([]), "No actionable parent upgrades detected.")

    def test_analysis(self):
        rows = [
            DiscoveryRecord("lodash", "4.17.5", ["a", "lodash"]),
            DiscoveryRecord("lodash", "4.17.0", ["b", "x", "lodash"]),
            DiscoveryRecord("qs", "6.0.0", ["c", "qs"]),
        ]

        text = analyze_vulnerabilities(rows)

        self.assertIn("Vulnerable package: lodash\n- Found in multiple parents: a, b", text)
        self.assertIn("- Oldest version among parents: b (4.17.0)", text)
        self.assertIn("Vulnerable package: qs\n- Parent: c", text)
        self.assertEqual(analyze_vulnerabilities([]), "No vulnerabilities detected.")
