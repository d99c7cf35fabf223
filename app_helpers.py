"""
Helper functions and decorators for the report Flask app
"""

import functools
from flask import Flask, jsonify, current_app
from typing import Callable, Dict, Optional

from auto_utils import InvalidInput, Report, ReportConfig, build_report

# Key under app.extensions holding each app's own report cache
CACHE_KEY = 'auto_report'


def api_response(func: Callable) -> Callable:
    """Decorator for standardized API responses with error handling"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            result = func(*args, **kwargs)
            if isinstance(result, dict):
                return jsonify(result)
            return result
        except InvalidInput as e:
            current_app.logger.warning(f"Invalid input in {func.__name__}: {str(e)}")
            return jsonify({'success': False, 'error': str(e)}), 400
        except Exception as e:
            current_app.logger.error(f"API Error in {func.__name__}: {str(e)}")
            return jsonify({'success': False, 'error': str(e)}), 500
    return wrapper


def init_report_cache(app: Flask) -> None:
    """Give ``app`` an empty report cache of its own"""
    app.extensions[CACHE_KEY] = {}


def report_cache(app: Optional[Flask] = None) -> Dict[str, Report]:
    app = app or current_app
    return app.extensions.setdefault(CACHE_KEY, {})


def get_report() -> Report:
    """Build the current app's report on first use and serve the cached copy afterwards"""
    cache = report_cache()
    if 'report' not in cache:
        config: ReportConfig = current_app.config['REPORT_CONFIG']
        current_app.logger.info("Building report")
        cache['report'] = build_report(config)
    return cache['report']


def clear_report_cache(app: Optional[Flask] = None) -> None:
    report_cache(app).clear()
