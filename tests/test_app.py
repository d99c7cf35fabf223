import pytest

from app import create_app
from app_helpers import report_cache
from auto_utils import ReportConfig


@pytest.fixture
def client():
    app = create_app(ReportConfig())
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


def test_index_serves_report(client):
    response = client.get('/')

    assert response.status_code == 200
    assert b'Auto MPG statistics report' in response.data


def test_metrics_endpoint(client):
    response = client.get('/metrics')
    payload = response.get_json()

    assert response.status_code == 200
    assert payload['success'] is True
    assert payload['errors'] == {}
    assert 'simple_regression' in payload['metrics']


def test_download_report(client):
    response = client.get('/download_report')

    assert response.status_code == 200
    assert 'attachment' in response.headers['Content-Disposition']


def test_reset_clears_cache(client):
    client.get('/metrics')
    assert 'report' in report_cache(client.application)

    response = client.post('/reset')

    assert response.get_json()['message'] == 'Report cache cleared successfully'
    assert report_cache(client.application) == {}


def test_metrics_reports_section_errors(tmp_path):
    app = create_app(ReportConfig(data_path=tmp_path / 'missing.csv'))

    with app.test_client() as client:
        payload = client.get('/metrics').get_json()

    assert payload['success'] is False
    assert 'Data overview' in payload['errors']


def test_apps_keep_separate_reports(tmp_path):
    working = create_app(ReportConfig())
    broken = create_app(ReportConfig(data_path=tmp_path / 'missing.csv'))

    with working.test_client() as client:
        first = client.get('/metrics').get_json()
    with broken.test_client() as client:
        second = client.get('/metrics').get_json()

    assert first['success'] is True
    assert second['success'] is False
    assert report_cache(working)['report'] is not report_cache(broken)['report']
