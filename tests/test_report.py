import json

from auto_utils import ReportConfig, build_report, write_report
from auto_utils.report import Report, Section

SECTION_TITLES = [
    'Data overview',
    'Trends by model year',
    'Simple regression',
    'Interaction regression',
    'Full regression',
    'Manufacturer regression',
    'k-NN classification',
    'Weighted logistic regression',
    'Commentary',
]


def test_report_runs_every_section(bundled_report):
    assert [section.title for section in bundled_report.sections] == SECTION_TITLES
    assert bundled_report.errors == {}


def test_report_metrics_are_json_safe(bundled_report):
    metrics = bundled_report.metrics()

    json.dumps(metrics)
    assert metrics['data_overview']['rows'] == 398
    assert metrics['data_overview']['rows_after_cleaning'] == 392
    assert metrics['simple_regression']['RMSE'] > 0
    assert metrics['simple_regression']['formula'] == 'mpg ~ horsepower'
    assert len(metrics['manufacturer_regression']['manufacturers']) == 5


def test_report_classifier_metrics_in_range(bundled_report):
    metrics = bundled_report.metrics()
    knn = metrics['k_nn_classification']
    logistic = metrics['weighted_logistic_regression']

    assert 1 <= knn['params']['k'] <= 25
    assert -1 <= knn['Kappa'] <= 1
    assert 0 <= logistic['AUC'] <= 1
    assert sum(logistic['confusion'].values()) == logistic['n_test']


def test_report_html_contains_both_charts(bundled_report):
    html = bundled_report.to_html()

    assert html.startswith('<!DOCTYPE html>')
    assert 'trendChart' in html
    assert 'rocChart' in html
    assert 'AUC =' in html
    assert '1973 oil embargo' in html


def test_report_labels_missing_dataset(tmp_path):
    report = build_report(ReportConfig(data_path=tmp_path / 'missing.csv'))

    assert list(report.errors) == ['Data overview']
    assert 'class="error"' in report.to_html()


def test_failing_section_does_not_stop_report():
    report = build_report(ReportConfig(top_k_manufacturers=500))

    assert 'Manufacturer regression' in report.errors
    assert 'Simple regression' not in report.errors
    assert len(report.sections) == len(SECTION_TITLES)
    assert report.metrics()['manufacturer_regression']['error'].startswith('k must be')


def test_write_report(tmp_path, bundled_report):
    path = write_report(bundled_report, tmp_path / 'out' / 'report.html')

    assert path.exists()
    assert 'Auto MPG statistics report' in path.read_text(encoding='utf-8')


def test_report_template_escapes_titles_and_errors():
    report = Report(config=ReportConfig(), sections=[
        Section(title='Fits & residuals', body='<p class="metric">RMSE: 4.9</p>'),
        Section(title='Broken', error="Column '<mpg>' not found"),
    ])

    html = report.to_html()

    assert html.startswith('<!DOCTYPE html>')
    assert '<title>Auto MPG statistics report</title>' in html
    assert '<h2>Fits &amp; residuals</h2>' in html
    assert '<p class="metric">RMSE: 4.9</p>' in html
    assert '&lt;mpg&gt;' in html
    assert '<section id="broken">' in html
    assert html.index('<h2>Fits &amp; residuals</h2>') < html.index('<h2>Broken</h2>')
