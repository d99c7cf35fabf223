"""
Flask app serving the Auto MPG statistics report
HTML report at /, JSON metrics at /metrics, downloadable copy at /download_report
"""

import os
from flask import Flask, make_response

from auto_utils import ReportConfig
from app_helpers import api_response, get_report, clear_report_cache, init_report_cache


def create_app(config: ReportConfig = None) -> Flask:
    app = Flask(__name__)
    app.config['REPORT_CONFIG'] = config or ReportConfig(data_path=os.environ.get('AUTO_DATA_PATH'))
    init_report_cache(app)

    @app.route('/', methods=['GET'])
    def index():
        """Main page: the full HTML report."""
        return get_report().to_html()

    @app.route('/metrics', methods=['GET'])
    @api_response
    def get_metrics():
        """AJAX endpoint: returns every section's metrics as JSON."""
        report = get_report()
        return {
            'success': not report.errors,
            'metrics': report.metrics(),
            'errors': report.errors
        }

    @app.route('/download_report')
    def download_report():
        """Download the report as a standalone HTML file."""
        response = make_response(get_report().to_html())
        response.headers['Content-Type'] = 'text/html; charset=utf-8'
        response.headers['Content-Disposition'] = 'attachment; filename=auto_report.html'
        return response

    @app.route('/reset', methods=['POST'])
    @api_response
    def reset():
        """Drop the cached report so the next request rebuilds it."""
        clear_report_cache()
        return {'message': 'Report cache cleared successfully'}

    return app


app = create_app()

if __name__ == "__main__":
    app.run(host='127.0.0.1', port=5002)
