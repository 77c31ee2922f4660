from datetime import datetime
from decimal import Decimal

from balances import (
    calculate_balances, calculate_debts, calculate_user_balance, filter_relevant_settlements,
)
from models import User, Expense, ExpenseSplit, Settlement
from splits import build_splits

ALICE, BOB, CAROL = 1, 2, 3
MEMBERS = [User(id=ALICE, name='Alice'), User(id=BOB, name='Bob'), User(id=CAROL, name='Carol')]


def expense(id, payer_id, amount, created_at=None):
    return Expense(id=id, payer_id=payer_id, amount=Decimal(amount),
                   created_at=created_at or datetime(2024, 1, id))


def split(expense_id, user_id, amount):
    return ExpenseSplit(expense_id=expense_id, user_id=user_id, amount=Decimal(amount))


def settlement(from_id, to_id, amount, created_at=None):
    return Settlement(from_user_id=from_id, to_user_id=to_id, amount=Decimal(amount),
                      created_at=created_at or datetime(2024, 2, 1))


def by_id(balances):
    return {b.user_id: b.amount for b in balances}


def test_payer_credited_with_sum_of_splits():
    exps = [expense(1, ALICE, '90')]
    splits = [split(1, BOB, '30'), split(1, CAROL, '30')]
    result = by_id(calculate_balances(MEMBERS, exps, splits, []))
    assert result == {ALICE: Decimal('60.00'), BOB: Decimal('-30.00'), CAROL: Decimal('-30.00')}


def test_expense_without_splits_does_not_credit_payer():
    result = by_id(calculate_balances(MEMBERS, [expense(1, ALICE, '50')], [], []))
    assert result[ALICE] == Decimal('0.00')


def test_settlement_reduces_debt_symmetrically():
    exps = [expense(1, ALICE, '500')]
    splits = build_splits('full', 1, Decimal('500'), ALICE, [ALICE, BOB])
    result = by_id(calculate_balances(MEMBERS, exps, splits, [settlement(BOB, ALICE, '200')]))
    assert result[ALICE] == Decimal('300.00')
    assert result[BOB] == Decimal('-300.00')


def test_balances_keep_member_order_and_names():
    result = calculate_balances(MEMBERS, [], [], [])
    assert [b.name for b in result] == ['Alice', 'Bob', 'Carol']
    assert all(b.amount == Decimal('0.00') for b in result)


def test_name_falls_back_to_id():
    result = calculate_balances([User(id=123456789012)], [], [], [])
    assert result[0].name == '12345678'


def test_sum_of_balances_is_zero():
    exps = [expense(1, ALICE, '100'), expense(2, BOB, '61'), expense(3, CAROL, '10')]
    splits = (build_splits('equal', 1, Decimal('100'), ALICE, [ALICE, BOB, CAROL])
              + build_splits('percent', 2, Decimal('61'), BOB, [ALICE, BOB, CAROL],
                             custom={ALICE: 33, BOB: 33, CAROL: 34})
              + build_splits('full', 3, Decimal('10'), CAROL, [ALICE, BOB, CAROL]))
    sts = [settlement(BOB, ALICE, '12.34'), settlement(CAROL, BOB, '5')]
    result = calculate_balances(MEMBERS, exps, splits, sts)
    assert abs(sum(b.amount for b in result)) <= Decimal('0.01')


def test_user_balance_matches_full_computation():
    exps = [expense(1, ALICE, '100'), expense(2, BOB, '45.50')]
    splits = (build_splits('equal', 1, Decimal('100'), ALICE, [ALICE, BOB, CAROL])
              + build_splits('custom', 2, Decimal('45.50'), BOB, [ALICE, BOB, CAROL],
                             custom={ALICE: '20.25', CAROL: '25.25'}))
    sts = [settlement(CAROL, ALICE, '10')]
    full = by_id(calculate_balances(MEMBERS, exps, splits, sts))
    for m in MEMBERS:
        assert calculate_user_balance(m.id, exps, splits, sts) == full[m.id]


def test_splits_of_unknown_expenses_are_ignored():
    result = by_id(calculate_balances(MEMBERS, [], [split(99, BOB, '10')], []))
    assert result[BOB] == Decimal('0.00')
    assert calculate_user_balance(BOB, [], [split(99, BOB, '10')], []) == Decimal('0.00')


def test_recomputing_is_idempotent():
    exps = [expense(1, ALICE, '30')]
    splits = [split(1, BOB, '15'), split(1, CAROL, '15')]
    first = calculate_balances(MEMBERS, exps, splits, [])
    assert calculate_balances(MEMBERS, exps, splits, []) == first


def test_filter_relevant_settlements():
    exps = [expense(1, ALICE, '10', datetime(2024, 3, 1)), expense(2, BOB, '10', datetime(2024, 3, 5))]
    early = settlement(BOB, ALICE, '5', datetime(2024, 2, 28))
    same = settlement(BOB, ALICE, '5', datetime(2024, 3, 1))
    late = settlement(BOB, ALICE, '5', datetime(2024, 4, 1))
    assert filter_relevant_settlements(exps, [early, same, late]) == [same, late]


def test_filter_relevant_settlements_without_expenses():
    assert filter_relevant_settlements([], [settlement(BOB, ALICE, '5')]) == []


def test_calculate_debts_matches_debtors_to_creditors():
    exps = [expense(1, ALICE, '90')]
    splits = [split(1, BOB, '30'), split(1, CAROL, '30')]
    transfers = calculate_debts(calculate_balances(MEMBERS, exps, splits, []))
    assert sorted(transfers) == [(BOB, ALICE, Decimal('30.00')), (CAROL, ALICE, Decimal('30.00'))]


def test_calculate_debts_empty():
    assert calculate_debts(calculate_balances(MEMBERS, [], [], [])) == []
