"""
Chart generation for the report using Plotly.
Each create_* function returns an HTML fragment; build_* returns the figure.
"""
from typing import Optional, Sequence, Tuple

import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from .metrics import RocCurve

PLOT_CONFIG = {
    'displayModeBar': True,
    'displaylogo': False,
    'modeBarButtonsToRemove': ['pan2d', 'lasso2d', 'select2d'],
    'responsive': True
}

MPG_COLOR = '#1FB8CD'
HORSEPOWER_COLOR = '#FF6B6B'
MARKER_COLOR = '#96CEB4'


def build_trend_figure(yearly: pd.DataFrame, reference_years: Sequence[Tuple[int, str]] = ()) -> go.Figure:
    """Dual-axis line chart of mean mpg (left) and mean horsepower (right) by model year."""
    years = [1900 + int(year) for year in yearly.index]

    fig = make_subplots(specs=[[{'secondary_y': True}]])
    fig.add_trace(
        go.Scatter(x=years, y=yearly['mpg'], name='Mean mpg', mode='lines+markers',
                   line=dict(color=MPG_COLOR, width=3)),
        secondary_y=False,
    )
    fig.add_trace(
        go.Scatter(x=years, y=yearly['horsepower'], name='Mean horsepower', mode='lines+markers',
                   line=dict(color=HORSEPOWER_COLOR, width=3)),
        secondary_y=True,
    )

    for year, label in reference_years:
        fig.add_shape(
            type='line', xref='x', yref='paper',
            x0=1900 + int(year), x1=1900 + int(year), y0=0, y1=1,
            line=dict(color=MARKER_COLOR, dash='dash', width=2),
        )
        fig.add_annotation(
            x=1900 + int(year), xref='x', y=1, yref='paper',
            text=label, showarrow=False, xanchor='right', yanchor='bottom',
        )

    fig.update_layout(
        title='Fuel economy and power by model year',
        xaxis_title='Model year',
        height=450,
        margin=dict(l=60, r=60, t=70, b=50),
        font=dict(size=12),
        plot_bgcolor='rgba(0,0,0,0)',
        paper_bgcolor='rgba(0,0,0,0)',
        legend=dict(orientation='h', y=-0.2),
    )
    fig.update_yaxes(title_text='Mean mpg', secondary_y=False)
    fig.update_yaxes(title_text='Mean horsepower', secondary_y=True)
    return fig


def create_trend_chart(yearly: pd.DataFrame, reference_years: Sequence[Tuple[int, str]] = ()) -> str:
    if yearly is None or yearly.empty:
        return "<div class='chart-placeholder'>No yearly data available</div>"
    fig = build_trend_figure(yearly, reference_years)
    return fig.to_html(full_html=False, include_plotlyjs=False, config=PLOT_CONFIG, div_id="trendChart")


def build_roc_figure(curve: RocCurve, auc_value: float, title: Optional[str] = None) -> go.Figure:
    """ROC step curve with the chance diagonal; AUC in the title."""
    fig = go.Figure(data=[
        go.Scatter(
            x=curve.fpr,
            y=curve.tpr,
            mode='lines',
            line=dict(color=MPG_COLOR, width=3, shape='linear'),
            name='ROC',
        ),
        go.Scatter(
            x=[0, 1],
            y=[0, 1],
            mode='lines',
            line=dict(color='#999999', dash='dot'),
            name='Chance',
        ),
    ])

    fig.update_layout(
        title=f'{title or "ROC curve"} (AUC = {auc_value:.3f})',
        xaxis_title='False positive rate',
        yaxis_title='True positive rate',
        height=450,
        margin=dict(l=60, r=50, t=60, b=50),
        font=dict(size=12),
        plot_bgcolor='rgba(0,0,0,0)',
        paper_bgcolor='rgba(0,0,0,0)',
        xaxis=dict(range=[0, 1]),
        yaxis=dict(range=[0, 1.02]),
    )
    return fig


def create_roc_chart(curve: Optional[RocCurve], auc_value: Optional[float], title: Optional[str] = None) -> str:
    if curve is None or auc_value is None:
        return "<div class='chart-placeholder'>ROC curve is undefined for these labels</div>"
    fig = build_roc_figure(curve, auc_value, title)
    return fig.to_html(full_html=False, include_plotlyjs=False, config=PLOT_CONFIG, div_id="rocChart")
