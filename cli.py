"""Command line entry point: generate the Auto MPG report as an HTML file."""

import logging

import click

from auto_utils import ReportConfig, build_report, write_report


@click.command()
@click.option('--output', '-o', default='auto_report.html', show_default=True,
              type=click.Path(dir_okay=False), help='Where to write the HTML report.')
@click.option('--data', 'data_path', default=None, type=click.Path(exists=True, dir_okay=False),
              help='CSV copy of the Auto dataset (defaults to the bundled copy).')
@click.option('--verbose', '-v', is_flag=True, help='Log progress of every stage.')
def main(output: str, data_path: str, verbose: bool) -> None:
    """Fit the regression and classification models and write the report."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    report = build_report(ReportConfig(data_path=data_path))
    path = write_report(report, output)

    for title, error in report.errors.items():
        click.echo(f"Section '{title}' failed: {error}", err=True)
    click.echo(f"Report written to {path}")


if __name__ == "__main__":
    main()
