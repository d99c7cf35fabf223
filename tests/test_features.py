import pandas as pd
import pytest

from auto_utils import InvalidInput
from auto_utils.features import (
    add_manufacturer, build_feature_matrix, indicator_column, indicator_columns, manufacturer,
    manufacturer_indicators, parse_formula, top_manufacturers,
)


@pytest.fixture
def makes_df() -> pd.DataFrame:
    names = [
        'ford pinto', 'chevrolet vega', 'amc gremlin', 'ford torino',
        'buick skylark', 'chevrolet impala', 'Ford maverick', 'toyota corona',
    ]
    return pd.DataFrame({'mpg': [float(20 + i) for i in range(len(names))], 'name': names})


def test_manufacturer_is_first_token():
    assert manufacturer('chevrolet chevelle malibu') == 'chevrolet'
    assert manufacturer('  vw   pickup') == 'vw'
    assert manufacturer('mercedes-benz 280s') == 'mercedes-benz'


def test_manufacturer_blank_name():
    with pytest.raises(InvalidInput):
        manufacturer('   ')


def test_add_manufacturer_returns_new_frame(makes_df):
    derived = add_manufacturer(makes_df)

    assert 'manufacturer' in derived.columns
    assert 'manufacturer' not in makes_df.columns


def test_top_manufacturers_breaks_ties_lexically(makes_df):
    # ford and chevrolet twice each; 'Ford' is a separate, case-sensitive make.
    assert top_manufacturers(makes_df, 2) == ['chevrolet', 'ford']
    assert top_manufacturers(makes_df, 4) == ['chevrolet', 'ford', 'Ford', 'amc']


def test_top_manufacturers_ignores_row_order(makes_df):
    shuffled = makes_df.sample(frac=1, random_state=3)

    assert top_manufacturers(shuffled, 4) == top_manufacturers(makes_df, 4)


@pytest.mark.parametrize("k", [0, 7])
def test_top_manufacturers_k_out_of_range(makes_df, k):
    with pytest.raises(InvalidInput):
        top_manufacturers(makes_df, k)


def test_indicator_column_name():
    assert indicator_column('ford') == 'is_ford'
    assert indicator_column('mercedes-benz') == 'is_mercedes_benz'


def test_indicators_one_hot(makes_df):
    k = 3
    derived = manufacturer_indicators(makes_df, k)
    selected = top_manufacturers(makes_df, k)
    columns = indicator_columns(selected)

    assert list(derived.columns) == [*makes_df.columns, *columns]
    row_sums = derived[columns].sum(axis=1)
    in_top = add_manufacturer(makes_df)['manufacturer'].isin(selected)
    assert (row_sums[in_top] == 1).all()
    assert (row_sums[~in_top] == 0).all()
    assert 'is_ford' not in makes_df.columns


def test_indicator_names_stay_unique_after_sanitising():
    df = pd.DataFrame({'mpg': [20.0, 21.0, 22.0, 23.0], 'name': ['a-b x', 'a-b y', 'a_b z', 'c w']})

    isolated = manufacturer_indicators(df, 2, isolate=True)

    assert indicator_columns(['a-b', 'a_b']) == ['is_a_b', 'is_a_b_2']
    assert list(isolated.columns) == ['is_a_b', 'is_a_b_2']
    assert isolated.sum(axis=1).tolist() == [1, 1, 1, 0]


def test_indicators_reject_existing_column(makes_df):
    with pytest.raises(InvalidInput):
        manufacturer_indicators(makes_df.assign(is_ford=0), 2)


def test_indicators_isolated(makes_df):
    isolated = manufacturer_indicators(makes_df, 2, target='mpg', isolate=True)

    assert list(isolated.columns) == ['mpg', 'is_chevrolet', 'is_ford']
    assert len(isolated) == len(makes_df)


def test_indicators_with_fixed_makes(makes_df):
    subset = makes_df.iloc[:2]

    isolated = manufacturer_indicators(subset, isolate=True, makes=['chevrolet', 'ford', 'amc'])

    assert list(isolated.columns) == ['is_chevrolet', 'is_ford', 'is_amc']
    assert isolated['is_amc'].sum() == 0


def test_parse_formula():
    assert parse_formula('mpg ~ horsepower') == ('mpg', ['horsepower'])
    assert parse_formula('mpg~horsepower + weight + horsepower : weight') == (
        'mpg', ['horsepower', 'weight', 'horsepower:weight']
    )


@pytest.mark.parametrize("formula", ['mpg horsepower', 'mpg ~ ', ' ~ horsepower', 'a ~ b ~ c'])
def test_parse_formula_rejects_malformed(formula):
    with pytest.raises(InvalidInput):
        parse_formula(formula)


def test_feature_matrix_shape_and_interaction(small_auto):
    matrix = build_feature_matrix(small_auto, ['horsepower', 'horsepower:weight'], target='mpg')

    assert list(matrix.columns) == ['horsepower', 'horsepower:weight', 'mpg']
    assert len(matrix) == len(small_auto)
    expected = small_auto['horsepower'] * small_auto['weight']
    assert matrix['horsepower:weight'].tolist() == expected.tolist()


def test_feature_matrix_all_remaining_columns(small_auto):
    matrix = build_feature_matrix(small_auto, ['.'], target='mpg')

    assert list(matrix.columns) == [
        'cylinders', 'displacement', 'horsepower', 'weight', 'acceleration', 'year', 'mpg',
    ]


def test_feature_matrix_drops_missing_rows(small_auto):
    df = small_auto.copy()
    df.loc[[0, 3], 'horsepower'] = None

    matrix = build_feature_matrix(df, ['horsepower'], target='mpg')
    kept = build_feature_matrix(df, ['horsepower'], target='mpg', keep_index=True)

    assert len(matrix) == 3
    assert list(kept.index) == [1, 2, 4]


def test_feature_matrix_unknown_predictor(small_auto):
    with pytest.raises(InvalidInput, match="torque"):
        build_feature_matrix(small_auto, ['torque'], target='mpg')


def test_feature_matrix_target_as_predictor(small_auto):
    with pytest.raises(InvalidInput):
        build_feature_matrix(small_auto, ['mpg'], target='mpg')


def test_feature_matrix_text_predictor(small_auto):
    with pytest.raises(InvalidInput, match="numeric"):
        build_feature_matrix(small_auto, ['name'], target='mpg')
