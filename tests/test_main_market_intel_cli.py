from __future__ import annotations

import argparse
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import main
from schemas.market_intel import MarketIntelligenceReport, ReportStatus


def make_args(**overrides) -> argparse.Namespace:
    values = {
        "input": None,
        "pain": None,
        "audience": None,
        "problem": None,
        "emotion": None,
        "count": None,
        "output": None,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


class MarketIntelCliTests(unittest.TestCase):
    def test_profile_from_flags(self):
        args = make_args(pain="late invoices", audience="freelance designers", problem="cash flow", emotion="safe")
        self.assertEqual(
            main.load_profile(args),
            {
                "pain_points": "late invoices",
                "target_audience": "freelance designers",
                "problem": "cash flow",
                "primary_emotion": "safe",
            },
        )

    def test_profile_file_with_wrapper_sets_count(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "profile.json"
            path.write_text(json.dumps({"profile": {"problem": "cash flow"}, "quote_count": 12}))
            args = make_args(input=str(path))
            self.assertEqual(main.load_profile(args), {"problem": "cash flow"})
            self.assertEqual(args.count, 12)

    def test_command_saves_report(self):
        report = MarketIntelligenceReport(reasoning="No relevant data found: nothing.", status=ReportStatus.NO_DATA)
        with tempfile.TemporaryDirectory() as tmp:
            output = Path(tmp) / "out" / "report.json"
            args = make_args(problem="cash flow", count=5, output=str(output))
            with patch.object(main, "run_market_intelligence", return_value=report) as run:
                result = main.run_market_intel_cmd(args)

            run.assert_called_once_with({"pain_points": "", "target_audience": "", "problem": "cash flow"}, 5)
            self.assertIs(result, report)
            saved = json.loads(output.read_text())
            self.assertEqual(saved["status"], "no_data")

    def test_malformed_input_file_exits_cleanly(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "profile.json"
            path.write_text('{"profile": {"problem": "cash flow",}')
            with patch.object(main, "run_market_intelligence") as run:
                with self.assertRaises(SystemExit) as ctx:
                    main.run_market_intel_cmd(make_args(input=str(path)))
        self.assertEqual(ctx.exception.code, 2)
        run.assert_not_called()

    def test_invalid_profile_exits(self):
        with patch.object(main, "run_market_intelligence", side_effect=ValueError("profile needs problem")):
            with self.assertRaises(SystemExit) as ctx:
                main.run_market_intel_cmd(make_args())
        self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
