from click.testing import CliRunner

from cli import main


def test_cli_writes_report(tmp_path):
    output = tmp_path / 'report.html'

    result = CliRunner().invoke(main, ['--output', str(output)])

    assert result.exit_code == 0, result.output
    assert output.exists()
    assert f'Report written to {output}' in result.output


def test_cli_rejects_missing_data_file(tmp_path):
    result = CliRunner().invoke(main, ['--data', str(tmp_path / 'missing.csv')])

    assert result.exit_code != 0
