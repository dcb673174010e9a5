"""
Tests for the command-line interface.

Usage:
    pytest tests/test_cli.py -v
"""

import json

import pytest

from scamguard.cli import main


@pytest.fixture(autouse=True)
def memory_backend(monkeypatch):
    monkeypatch.setenv("SCAM_PREFERENCE_BACKEND", "memory")
    monkeypatch.setenv("SCAM_ANALYZER_TIMEOUT_SECONDS", "0")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.delenv("LOG_FILE", raising=False)


class TestCli:

    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_heuristics_json(self, capsys):
        assert main(["heuristics", "--json"]) == 0
        catalog = json.loads(capsys.readouterr().out)

        assert len(catalog) == 8
        assert catalog[0]["id"] == "price_anomaly"
        assert catalog[0]["analyzer"] is True

    def test_analyze_json(self, capsys):
        code = main([
            "analyze", "--title", "Wireless Headphones", "--price", "20",
            "--market-price", "100", "--json",
        ])

        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["riskFactors"][0] == "Price is suspiciously low (20% of market price)"

    def test_analyze_from_file(self, tmp_path, capsys):
        listing = tmp_path / "listing.json"
        listing.write_text(json.dumps({"title": "Watch", "price": 50, "marketPrice": 60}))

        assert main(["analyze", "--file", str(listing), "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["overallRiskLevel"] == "LOW"

    def test_analyze_requires_title_and_price(self, capsys):
        assert main(["analyze", "--title", "Watch"]) == 1
        assert "--price" in capsys.readouterr().out

    def test_prefs_threshold(self, capsys):
        assert main(["prefs", "--user", "u1", "--json", "threshold", "85"]) == 0
        assert json.loads(capsys.readouterr().out)["globalThreshold"] == 85

    def test_prefs_option(self, capsys):
        code = main(["prefs", "--json", "option", "image_quality_analysis", "minImageCount", "4"])

        assert code == 0
        prefs = json.loads(capsys.readouterr().out)
        image = [h for h in prefs["heuristics"] if h["id"] == "image_quality_analysis"][0]
        assert image["configOptions"]["min_image_count"] == 4

    def test_unknown_heuristic(self, capsys):
        assert main(["prefs", "disable", "nope"]) == 1
        assert "Heuristic with ID nope not found" in capsys.readouterr().out

    def test_invalid_configuration(self, monkeypatch, capsys):
        monkeypatch.setenv("SCAM_PREFERENCE_BACKEND", "mongo")
        assert main(["heuristics"]) == 1
