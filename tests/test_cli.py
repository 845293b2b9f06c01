"""Tests for the command line interface"""

import json
import pytest
from click.testing import CliRunner

from riplanner import __version__
from riplanner.cli.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, temp_config_file):
    def _invoke(*args):
        return runner.invoke(cli, ['--config', str(temp_config_file), *[str(a) for a in args]],
                             env={"COLUMNS": "200"})
    return _invoke


@pytest.mark.integration
class TestCli:
    """Test CLI commands end to end"""

    def test_version(self, invoke):
        result = invoke('version')
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_horizon(self, invoke, portfolio_file):
        result = invoke('horizon', portfolio_file, '--format', 'json')

        assert result.exit_code == 0
        assert '"first_full_year": 2026' in result.output
        assert '"latest_end_date": "2025-07-31"' in result.output

    def test_horizon_panel(self, invoke, portfolio_file):
        result = invoke('horizon', portfolio_file)

        assert result.exit_code == 0
        assert "Planning Horizon" in result.output
        assert "2026" in result.output

    def test_aggregate_json(self, invoke, portfolio_file, pricing_dir, temp_dir):
        output = temp_dir / "aggregate.json"
        result = invoke('aggregate', portfolio_file, pricing_dir, '--renew', 'partialUpfront_1y',
                        '--format', 'json', '--output', output)

        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        assert data["grouping"] == "ri-type"
        assert sorted(data["months"])[0] == "2024-06"
        assert sorted(data["months"])[-1] == "2026-12"
        assert data["diagnostics"]["unmatched"] == 0

    def test_aggregate_table(self, invoke, portfolio_file, pricing_dir):
        result = invoke('aggregate', portfolio_file, pricing_dir, '--grouping', 'cost-type')

        assert result.exit_code == 0, result.output
        assert "Monthly Cost" in result.output
        assert "Savings by Year" in result.output

    def test_project_json(self, invoke, portfolio_file, temp_dir):
        output = temp_dir / "projected.json"
        result = invoke('project', portfolio_file, '--scenario', 'fullUpfront_3y',
                        '--format', 'json', '--output', output)

        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        projected = [r for r in data["reservations"] if r["type"] == "projected"]
        assert [r["id"] for r in projected] == ["ri-a-renew-1", "ri-b-renew-1"]
        assert all(r["upfront_payment"] == "All Upfront" for r in projected)
        assert data["errors"] == []

    def test_project_table(self, invoke, portfolio_file):
        result = invoke('project', portfolio_file)

        assert result.exit_code == 0, result.output
        assert "4 renewals projected" in result.output

    def test_compare_json(self, invoke, portfolio_file, pricing_dir, temp_dir):
        output = temp_dir / "compare.json"
        result = invoke('compare', portfolio_file, pricing_dir, '--format', 'json', '--output', output)

        assert result.exit_code == 0, result.output
        data = json.loads(output.read_text())
        assert data["first_full_year"] == 2026
        assert len(data["comparisons"]) == 6
        assert data["errors"] == []

    def test_compare_html(self, invoke, portfolio_file, pricing_dir, temp_dir):
        output = temp_dir / "compare.html"
        result = invoke('compare', portfolio_file, pricing_dir, '--renewals',
                        '--format', 'html', '--output', output, '--title', 'Fleet')

        assert result.exit_code == 0, result.output
        assert "<title>Fleet</title>" in output.read_text()

    def test_compare_table(self, invoke, portfolio_file, pricing_dir):
        result = invoke('compare', portfolio_file, pricing_dir, '--renewals')

        assert result.exit_code == 0, result.output
        assert "Recommendation" in result.output
        assert "Renewal Outcomes" in result.output

    def test_invalid_portfolio(self, invoke, temp_dir, pricing_dir):
        path = temp_dir / "bad.json"
        path.write_text(json.dumps({"reservations": [{"startDate": "2024-01-01"}]}))
        result = invoke('compare', path, pricing_dir)

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_missing_argument(self, invoke, temp_dir):
        result = invoke('horizon', temp_dir / "missing.json")
        assert result.exit_code == 2
