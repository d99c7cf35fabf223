import pytest

from auto_utils import InvalidInput
from auto_utils.eda import manufacturer_counts, summary_table, yearly_means


def test_yearly_means(small_auto):
    yearly = yearly_means(small_auto)

    assert list(yearly.index) == [70, 72, 75, 80]
    assert yearly.loc[70, 'mpg'] == pytest.approx(16.5)
    assert yearly.loc[70, 'horsepower'] == pytest.approx(147.5)


def test_yearly_means_missing_column(small_auto):
    with pytest.raises(InvalidInput, match="horsepower"):
        yearly_means(small_auto.drop(columns=['horsepower']))


def test_summary_table_covers_numeric_columns(small_auto):
    table = summary_table(small_auto)

    assert 'name' not in table.columns
    assert table.loc['count', 'mpg'] == 5


def test_manufacturer_counts(small_auto):
    counts = manufacturer_counts(small_auto, 2)

    assert counts.to_dict(orient='records') == [
        {'manufacturer': 'ford', 'records': 2},
        {'manufacturer': 'buick', 'records': 1},
    ]
