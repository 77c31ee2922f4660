# services.py
"""
Persistence side of the ledger: validated, all-or-nothing writes of expenses
(with their generated splits) and settlements, and loading one group's
snapshot for the balance computations.
"""
from collections import namedtuple
from decimal import Decimal, InvalidOperation
import logging

from errors import (
    InvalidAmountError, MissingBeneficiaryError, SameMemberSettlementError,
    SplitSumMismatchError, ValidationError,
)
from models import db, Expense, ExpenseSplit, Group, Settlement, utcnow
from money import CENT, ZERO, round2, to_decimal
from splits import SplitType, build_splits, parse_split_type

logger = logging.getLogger(__name__)

GroupSnapshot = namedtuple('GroupSnapshot', ['group', 'members', 'expenses', 'splits', 'settlements'])

MAX_DESCRIPTION = 200


def parse_amount(value) -> Decimal:
    try:
        amount = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmountError(f'Invalid amount: {value!r}') from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError('Amount must be greater than 0')
    return round2(amount)


def parse_share(value, uid) -> Decimal:
    """A custom amount or percentage: numeric and not negative. Zero means no share."""
    try:
        share = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f'Invalid split value for {uid}: {value!r}') from None
    if not share.is_finite() or share < 0:
        raise InvalidAmountError(f'Split value for {uid} must be a non-negative number')
    return share


def validate_expense_data(group, description, amount, payer_id, split_type, member_ids,
                          custom=None, beneficiary_id=None):
    """
    Check an expense before anything is written.
    Returns (amount, split_type, member_ids, custom) normalized; raises a LedgerError otherwise.
    """
    if not description or not description.strip():
        raise ValidationError('description required')
    if len(description) > MAX_DESCRIPTION:
        raise ValidationError('description too long')
    amount = parse_amount(amount)
    split_type = parse_split_type(split_type)

    group_ids = set(group.member_ids)
    if payer_id is None:
        raise ValidationError('payer required')
    if payer_id not in group_ids:
        raise ValidationError('payer not in group')
    member_ids = list(dict.fromkeys(member_ids or []))
    if not member_ids:
        raise ValidationError('group must have at least one member')
    outsiders = [uid for uid in member_ids + list(custom or {}) if uid not in group_ids]
    if outsiders:
        raise ValidationError(f'not group members: {outsiders}')

    if split_type is SplitType.CUSTOM:
        custom = {uid: parse_share(v, uid) for uid, v in (custom or {}).items()}
        total = sum(custom.values(), ZERO)
        if abs(total - amount) > CENT:
            raise SplitSumMismatchError(f'custom amounts must add up to {amount}')
    elif split_type is SplitType.PERCENT and custom is not None:
        custom = {uid: parse_share(v, uid) for uid, v in custom.items()}
        implied = sum((amount * custom.get(uid, ZERO) / 100 for uid in member_ids), ZERO)
        if abs(implied - amount) > CENT:
            raise SplitSumMismatchError('percentages must add up to 100')
    elif split_type is SplitType.FULL:
        if beneficiary_id is not None and beneficiary_id == payer_id:
            raise MissingBeneficiaryError('beneficiary must be someone other than the payer')
        if beneficiary_id is not None and beneficiary_id not in group_ids:
            raise ValidationError('beneficiary not in group')

    return amount, split_type, member_ids, custom


def _write_splits(expense, split_type, member_ids, custom, beneficiary_id):
    splits = build_splits(split_type, expense.id, expense.amount, expense.payer_id,
                          member_ids, custom=custom, beneficiary_id=beneficiary_id)
    if split_type is SplitType.FULL and not splits:
        raise MissingBeneficiaryError()
    for s in splits:
        db.session.add(ExpenseSplit(expense_id=s.expense_id, user_id=s.user_id, amount=s.amount))
    return splits


def create_expense(group_id, description, amount, payer_id, split_type='equal',
                   member_ids=None, custom=None, beneficiary_id=None, created_by=None):
    group = db.get_or_404(Group, group_id)
    if member_ids is None:
        member_ids = group.member_ids
    amount, split_type, member_ids, custom = validate_expense_data(
        group, description, amount, payer_id, split_type,
        member_ids, custom, beneficiary_id)
    try:
        exp = Expense(group_id=group.id, payer_id=payer_id, amount=amount,
                      description=description.strip(), split_type=split_type.value,
                      created_by=created_by)
        db.session.add(exp)
        db.session.flush()
        splits = _write_splits(exp, split_type, member_ids, custom, beneficiary_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.warning('expense creation rolled back for group %s', group_id)
        raise
    logger.info('expense %s created in group %s (%s, %d splits)',
                exp.id, group.id, split_type.value, len(splits))
    return exp


def update_expense(expense_id, description, amount, payer_id, split_type='equal',
                   member_ids=None, custom=None, beneficiary_id=None, updated_by=None):
    """Update an expense and regenerate all of its splits."""
    exp = db.get_or_404(Expense, expense_id)
    group = exp.group
    if member_ids is None:
        member_ids = group.member_ids
    amount, split_type, member_ids, custom = validate_expense_data(
        group, description, amount, payer_id, split_type,
        member_ids, custom, beneficiary_id)
    try:
        exp.description = description.strip()
        exp.amount = amount
        exp.payer_id = payer_id
        exp.split_type = split_type.value
        exp.updated_at = utcnow()
        exp.updated_by = updated_by
        exp.splits.clear()
        db.session.flush()
        splits = _write_splits(exp, split_type, member_ids, custom, beneficiary_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.warning('expense %s update rolled back', expense_id)
        raise
    db.session.refresh(exp)
    logger.info('expense %s updated (%s, %d splits)', exp.id, split_type.value, len(splits))
    return exp


def delete_expense(expense_id):
    exp = db.get_or_404(Expense, expense_id)
    db.session.delete(exp)
    db.session.commit()
    logger.info('expense %s deleted', expense_id)


def create_settlement(group_id, from_user_id, to_user_id, amount):
    group = db.get_or_404(Group, group_id)
    amount = parse_amount(amount)
    if from_user_id == to_user_id:
        raise SameMemberSettlementError()
    members = set(group.member_ids)
    if from_user_id not in members or to_user_id not in members:
        raise ValidationError('both members must belong to the group')

    st = Settlement(group_id=group.id, from_user_id=from_user_id, to_user_id=to_user_id, amount=amount)
    db.session.add(st)
    db.session.commit()
    logger.info('settlement %s: %s paid %s %s in group %s',
                st.id, from_user_id, to_user_id, amount, group.id)
    return st


def delete_settlement(settlement_id):
    """Soft delete; the row stays for audit."""
    st = db.get_or_404(Settlement, settlement_id)
    if st.deleted_at is None:
        st.deleted_at = utcnow()
        db.session.commit()
        logger.info('settlement %s deleted', settlement_id)
    return st


def load_group_snapshot(group_id) -> GroupSnapshot:
    group = db.get_or_404(Group, group_id)
    expenses = db.session.scalars(
        db.select(Expense).where(Expense.group_id == group.id).order_by(Expense.created_at, Expense.id)
    ).all()
    splits = db.session.scalars(
        db.select(ExpenseSplit).join(Expense).where(Expense.group_id == group.id)
    ).all()
    settlements = db.session.scalars(
        db.select(Settlement)
        .where(Settlement.group_id == group.id, Settlement.deleted_at.is_(None))
        .order_by(Settlement.created_at, Settlement.id)
    ).all()
    return GroupSnapshot(group, list(group.users), expenses, splits, settlements)
