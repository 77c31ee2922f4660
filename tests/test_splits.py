from decimal import Decimal

import pytest

from errors import MissingParametersError, UnknownSplitTypeError
from splits import (
    SplitType, EqualSplitStrategy, EachSplitStrategy, build_splits, get_split_strategy,
)


def as_map(splits):
    return {s.user_id: s.amount for s in splits}


def test_equal_split_excludes_payer():
    splits = build_splits('equal', 1, Decimal('90'), 'u1', ['u1', 'u2', 'u3', 'u4'])
    assert as_map(splits) == {'u2': Decimal('22.50'), 'u3': Decimal('22.50'), 'u4': Decimal('22.50')}
    assert all(s.expense_id == 1 for s in splits)


def test_equal_split_remainder_not_redistributed():
    splits = build_splits(SplitType.EQUAL, 1, 100, 'u1', ['u1', 'u2', 'u3'])
    assert [s.amount for s in splits] == [Decimal('33.33'), Decimal('33.33')]


def test_equal_split_without_members_is_empty():
    assert build_splits('equal', 1, 50, 'u1', []) == []


def test_each_matches_equal():
    args = (7, Decimal('100'), 'b', ['a', 'b', 'c'])
    assert as_map(EachSplitStrategy().build(*args)) == as_map(EqualSplitStrategy().build(*args))


def test_full_with_explicit_beneficiary():
    splits = build_splits('full', 1, Decimal('55.5'), 'u1', ['u1', 'u2', 'u3'], beneficiary_id='u3')
    assert as_map(splits) == {'u3': Decimal('55.50')}


def test_full_defaults_to_first_non_payer():
    splits = build_splits('full', 1, 40, 'u2', ['u1', 'u2', 'u3'])
    assert as_map(splits) == {'u1': Decimal('40.00')}


def test_full_uses_first_custom_key_when_no_beneficiary():
    splits = build_splits('full', 1, 40, 'u1', ['u1', 'u2', 'u3'], custom={'u3': 0})
    assert as_map(splits) == {'u3': Decimal('40.00')}


def test_full_with_only_payer_is_empty():
    assert build_splits('full', 1, 40, 'u1', ['u1']) == []


def test_custom_drops_non_positive_and_payer():
    custom = {'p': 10, 'a': 0, 'b': -5, 'c': 3}
    splits = build_splits('custom', 1, 13, 'p', ['p', 'a', 'b', 'c'], custom=custom)
    assert as_map(splits) == {'c': Decimal('3.00')}


def test_custom_rounds_amounts():
    splits = build_splits('custom', 1, 20, 'p', ['p', 'a'], custom={'a': 12.345})
    assert as_map(splits) == {'a': Decimal('12.35')}


def test_percent_split():
    splits = build_splits('percent', 1, Decimal('200'), 'p', ['p', 'a', 'b', 'c'],
                          custom={'p': 50, 'a': 25, 'b': 25})
    assert as_map(splits) == {'a': Decimal('50.00'), 'b': Decimal('50.00')}


def test_percent_requires_percentages():
    with pytest.raises(MissingParametersError):
        build_splits('percent', 1, 100, 'p', ['p', 'a'])


def test_unknown_split_type():
    with pytest.raises(UnknownSplitTypeError):
        get_split_strategy('shares')


def test_registry_accepts_enum_and_tag():
    assert get_split_strategy(SplitType.CUSTOM) is get_split_strategy('custom')
