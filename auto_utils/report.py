"""Report assembly: runs every analysis in order and renders one HTML document.

Each section is built independently. Bad input or an undefined metric inside a
section becomes a labelled error box in that section; the rest of the report
is still produced.
"""

import html
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pandas as pd
from jinja2 import Environment, PackageLoader, select_autoescape

from .charts import create_roc_chart, create_trend_chart
from .config import LABEL_COLUMN, ReportConfig
from .dataset import add_efficiency_label, drop_missing, load_auto, split_dataset
from .eda import manufacturer_counts, missing_counts, summary_table, yearly_means
from .errors import DegenerateMetric, InvalidInput
from .features import ALL_COLUMNS, indicator_columns, manufacturer_indicators, parse_formula, top_manufacturers
from .metrics import evaluate_classifier, evaluate_probabilistic, evaluate_regression
from .models import fit_knn, fit_linear, fit_weighted_logistic
from .utils import format_metric, safe_json_convert

logger = logging.getLogger(__name__)

PLOTLY_CDN = 'https://cdn.plot.ly/plotly-2.35.2.min.js'
REPORT_TITLE = 'Auto MPG statistics report'
REPORT_TEMPLATE = 'report.html'

# Section titles and errors are escaped by the template; bodies are pre-rendered HTML.
_environment = Environment(
    loader=PackageLoader('auto_utils', 'templates'),
    autoescape=select_autoescape(['html']),
    trim_blocks=True,
    lstrip_blocks=True,
)

REGRESSION_FORMULAS = [
    ('Simple regression', 'mpg ~ horsepower'),
    ('Interaction regression', 'mpg ~ horsepower + weight + horsepower:weight'),
    ('Full regression', f'mpg ~ {ALL_COLUMNS}'),
]


@dataclass
class Section:
    """One titled block of the report."""
    title: str
    body: str = ''
    metrics: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def key(self) -> str:
        return self.title.lower().replace(' ', '_').replace('-', '_')


@dataclass
class AnalysisData:
    """Frames shared by the analysis sections."""
    raw: pd.DataFrame
    clean: pd.DataFrame
    train: pd.DataFrame
    test: pd.DataFrame


@dataclass
class Report:
    config: ReportConfig
    sections: List[Section] = field(default_factory=list)

    @property
    def errors(self) -> Dict[str, str]:
        return {section.title: section.error for section in self.sections if section.error}

    def metrics(self) -> Dict[str, Any]:
        """JSON-safe metrics of every section, keyed by section."""
        result = {}
        for section in self.sections:
            entry = dict(section.metrics)
            if section.error:
                entry['error'] = section.error
            result[section.key] = safe_json_convert(entry)
        return result

    def to_html(self) -> str:
        return _environment.get_template(REPORT_TEMPLATE).render(
            title=REPORT_TITLE,
            plotly_cdn=PLOTLY_CDN,
            sections=self.sections,
        )


def _table(df: pd.DataFrame, index: bool = True) -> str:
    return df.to_html(index=index, border=0, float_format=lambda v: f'{v:.3f}')


def _coefficient_table(coefficients: Dict[str, float]) -> str:
    frame = pd.DataFrame({'term': list(coefficients), 'coefficient': list(coefficients.values())})
    return _table(frame, index=False)


def _paragraphs(*texts: str) -> str:
    return ''.join(f'<p>{html.escape(text)}</p>' for text in texts)


def run_section(title: str, build: Callable[..., Section], *args) -> Section:
    """Build a section, turning bad input or undefined metrics into an error section."""
    try:
        section = build(*args)
    except (InvalidInput, DegenerateMetric) as exc:
        logger.error("Section '%s' failed: %s", title, exc)
        return Section(title=title, error=str(exc))
    section.title = title
    return section


def prepare_data(config: ReportConfig) -> AnalysisData:
    raw = load_auto(config.resolved_data_path)
    clean = add_efficiency_label(drop_missing(raw, ['horsepower']), config.efficiency_threshold)
    train, test = split_dataset(clean, config.test_size, config.random_state, stratify=LABEL_COLUMN)
    logger.info("Split %d records into %d train / %d test", len(clean), len(train), len(test))
    return AnalysisData(raw=raw, clean=clean, train=train, test=test)


def overview_section(data: AnalysisData, config: ReportConfig) -> Section:
    dropped = len(data.raw) - len(data.clean)
    missing = missing_counts(data.raw)
    positives = int((data.clean[LABEL_COLUMN] == 'yes').sum())
    body = _paragraphs(
        f"The dataset holds {len(data.raw)} vehicles from model years 1970-1982. "
        f"{dropped} records have no horsepower value and are dropped before any model "
        f"that uses it, leaving {len(data.clean)} records.",
        f"Records are split {1 - config.test_size:.0%} / {config.test_size:.0%} into training "
        f"and held-out test sets (seed {config.random_state}), stratified on whether a car "
        f"reaches {config.efficiency_threshold} mpg ({positives} of {len(data.clean)} do).",
    )
    body += _table(summary_table(data.clean))
    body += '<h3>Most frequent manufacturers</h3>'
    body += _table(manufacturer_counts(data.clean, config.top_k_manufacturers), index=False)
    return Section(
        title='',
        body=body,
        metrics={
            'rows': len(data.raw),
            'rows_after_cleaning': len(data.clean),
            'missing': missing[missing > 0].to_dict(),
            'train_rows': len(data.train),
            'test_rows': len(data.test),
        },
    )


def trend_section(data: AnalysisData, config: ReportConfig) -> Section:
    yearly = yearly_means(data.clean)
    first, last = yearly.iloc[0], yearly.iloc[-1]
    markers = ', '.join(f"{label} ({1900 + year})" for year, label in config.reference_years)
    body = create_trend_chart(yearly, config.reference_years)
    body += _paragraphs(
        f"Mean fuel economy rose from {first['mpg']:.1f} mpg in {1900 + int(yearly.index[0])} to "
        f"{last['mpg']:.1f} mpg in {1900 + int(yearly.index[-1])}, while mean horsepower fell from "
        f"{first['horsepower']:.0f} to {last['horsepower']:.0f}.",
        f"The dashed lines mark {markers}. The timing is suggestive, but a chart of yearly "
        "means cannot separate policy effects from price shocks or changes in the mix of "
        "imported cars.",
    )
    return Section(title='', body=body, metrics={'yearly_means': yearly.round(3).reset_index()})


def regression_section(data: AnalysisData, formula: str) -> Section:
    target, predictors = parse_formula(formula)
    model = fit_linear(data.train, target, predictors)
    result = evaluate_regression(model, data.test)
    body = _paragraphs(f"Model: {model.formula}")
    body += (f'<p class="metric">Test RMSE: {format_metric(result["RMSE"])} mpg '
             f'({result["n_train"]} train / {result["n_test"]} test rows)</p>')
    body += _coefficient_table(result['coefficients'])
    return Section(title='', body=body, metrics=dict(result))


def manufacturer_section(data: AnalysisData, config: ReportConfig) -> Section:
    makes = top_manufacturers(data.clean, config.top_k_manufacturers)
    train = manufacturer_indicators(data.train, target='mpg', isolate=True, makes=makes)
    test = manufacturer_indicators(data.test, target='mpg', isolate=True, makes=makes)

    model = fit_linear(train, 'mpg', indicator_columns(makes))
    result = evaluate_regression(model, test)
    body = _paragraphs(
        f"Indicator columns for the {len(makes)} most frequent manufacturers "
        f"({', '.join(makes)}); every other manufacturer is the baseline absorbed by the intercept.",
    )
    body += f'<p class="metric">Test RMSE: {format_metric(result["RMSE"])} mpg</p>'
    body += _coefficient_table(result['coefficients'])
    metrics = dict(result)
    metrics['manufacturers'] = makes
    return Section(title='', body=body, metrics=metrics)


def _confusion_block(matrix, result) -> str:
    body = _table(matrix.to_frame())
    kappa = format_metric(result.get('Kappa'))
    if result.get('Kappa_error'):
        kappa += f" ({result['Kappa_error']})"
    return body + f'<p class="metric">Kappa: {html.escape(kappa)}</p>'


def knn_section(data: AnalysisData, config: ReportConfig) -> Section:
    model = fit_knn(data.train, LABEL_COLUMN, config.classifier_predictors,
                    neighbors=config.knn_neighbors, folds=config.cv_folds, random_state=config.random_state)
    result, matrix = evaluate_classifier(model, data.test)
    cv = pd.DataFrame({'k': list(model.cv_scores), 'mean CV Kappa': list(model.cv_scores.values())})
    body = _paragraphs(
        f"Predictors ({', '.join(model.predictors)}) are standardized before the distance "
        f"search. k = {model.params['k']} maximizes mean Kappa over {config.cv_folds} "
        "cross-validation folds of the training data.",
    )
    body += _confusion_block(matrix, result)
    body += '<h3>Cross-validation</h3>' + _table(cv, index=False)
    return Section(title='', body=body, metrics=dict(result))


def logistic_section(data: AnalysisData, config: ReportConfig) -> Section:
    model = fit_weighted_logistic(data.train, LABEL_COLUMN, config.classifier_predictors,
                                  c_grid=config.logistic_c_grid, folds=config.cv_folds,
                                  random_state=config.random_state)
    result, matrix, curve = evaluate_probabilistic(model, data.test)
    body = create_roc_chart(curve, result.get('AUC'), title='Weighted logistic regression ROC')
    auc_text = format_metric(result.get('AUC'))
    if result.get('AUC_error'):
        auc_text += f" ({result['AUC_error']})"
    body += _paragraphs(
        "Rows are weighted by inverse class frequency so the minority class carries as much "
        f"total weight as the majority. C = {model.params['C']} maximizes mean ROC-AUC over "
        f"{config.cv_folds} cross-validation folds.",
    )
    body += f'<p class="metric">Test AUC: {html.escape(auc_text)}</p>'
    body += '<h3>Confusion matrix at probability 0.5</h3>' + _confusion_block(matrix, result)
    body += '<h3>Coefficients (standardized predictors)</h3>' + _coefficient_table(model.coefficients())
    return Section(title='', body=body, metrics=dict(result))


def commentary_section(config: ReportConfig) -> Section:
    body = '<h3>Methodology</h3>' + _paragraphs(
        "All models are fitted on the training split only and scored on held-out rows. "
        "Hyperparameters (k for k-NN, the regularization strength C for logistic regression) "
        "are chosen by stratified 5-fold cross-validation inside the training split, so the "
        "test set never influences model selection.",
        "Reported Kappa and AUC values depend on the loaded dataset and the split seed. They "
        "describe this sample, not a population quantity, and will move if either changes.",
        "Undefined metrics (for example Kappa when neither truth nor predictions vary) are "
        "reported as undefined rather than zero, because zero means no agreement beyond chance.",
    )
    body += '<h3>Policy and ethics</h3>' + _paragraphs(
        "Fuel economy standards are set per fleet, not per car. A classifier that flags "
        f"individual models as efficient (at least {config.efficiency_threshold} mpg) is a "
        "descriptive tool; using it to penalize a manufacturer would ignore the fleet averaging "
        "the regulation actually uses.",
        "Manufacturer indicators capture brand-level differences in this sample. Reading them as "
        "causal effects of a brand, or of a country of origin, confuses composition with cause: "
        "importers in the 1970s sold mostly small four-cylinder cars.",
        "Class weighting trades precision for recall on the minority class. Which error is more "
        "costly is a policy choice that should be made explicitly, not left to a default threshold.",
    )
    return Section(title='', body=body)


def build_report(config: Optional[ReportConfig] = None) -> Report:
    """Run the whole pipeline and collect every section."""
    config = (config or ReportConfig()).validate()
    report = Report(config=config)

    try:
        data = prepare_data(config)
    except InvalidInput as exc:
        logger.error("Could not prepare dataset: %s", exc)
        report.sections.append(Section(title='Data overview', error=str(exc)))
        return report

    report.sections.append(run_section('Data overview', overview_section, data, config))
    report.sections.append(run_section('Trends by model year', trend_section, data, config))
    for title, formula in REGRESSION_FORMULAS:
        report.sections.append(run_section(title, regression_section, data, formula))
    report.sections.append(run_section('Manufacturer regression', manufacturer_section, data, config))
    report.sections.append(run_section('k-NN classification', knn_section, data, config))
    report.sections.append(run_section('Weighted logistic regression', logistic_section, data, config))
    report.sections.append(run_section('Commentary', commentary_section, config))
    return report


def write_report(report: Report, path: Union[str, Path]) -> Path:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(report.to_html(), encoding='utf-8')
    logger.info("Report written to %s", output)
    return output
