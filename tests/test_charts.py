import pandas as pd

from auto_utils.charts import build_roc_figure, build_trend_figure, create_roc_chart, create_trend_chart
from auto_utils.eda import yearly_means
from auto_utils.metrics import auc, roc_curve


def test_trend_figure_has_two_axes_and_markers(small_auto):
    yearly = yearly_means(small_auto)

    fig = build_trend_figure(yearly, [(73, 'oil embargo'), (78, 'CAFE')])

    assert [trace.name for trace in fig.data] == ['Mean mpg', 'Mean horsepower']
    assert fig.data[1].yaxis == 'y2'
    assert list(fig.data[0].x) == [1970, 1972, 1975, 1980]
    assert len(fig.layout.shapes) == 2
    assert [a.text for a in fig.layout.annotations] == ['oil embargo', 'CAFE']


def test_trend_chart_html_fragment(small_auto):
    html = create_trend_chart(yearly_means(small_auto), [(73, 'oil embargo')])

    assert 'trendChart' in html
    assert '<html' not in html


def test_trend_chart_placeholder_when_empty():
    assert 'chart-placeholder' in create_trend_chart(pd.DataFrame())


def test_roc_figure_title_carries_auc():
    curve = roc_curve([1, 0, 1, 0], [0.8, 0.8, 0.3, 0.1])

    fig = build_roc_figure(curve, auc(curve), title='Test ROC')

    assert fig.layout.title.text == 'Test ROC (AUC = 0.625)'
    assert list(fig.data[0].x) == [0.0, 0.5, 0.5, 1.0]


def test_roc_chart_placeholder_when_undefined():
    assert 'undefined' in create_roc_chart(None, None)
