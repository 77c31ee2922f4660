# summary.py
"""
Cross-group summary for one user.

owed_by_me: sum of the user's own split rows.
owed_to_me: sum of split rows on expenses the user paid.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from models import db, Expense, ExpenseSplit, Group
from money import ZERO, round2, to_decimal


@dataclass
class SplitRow:
    """One split joined with its expense's group (and payer)."""
    amount: Decimal
    group_id: object
    group_name: str = ''
    paid_by: Optional[object] = None


@dataclass
class GroupSummary:
    group_id: object
    group_name: str
    owed_by_me: Decimal
    owed_to_me: Decimal
    net: Decimal

    def to_dict(self):
        return {
            'group_id': self.group_id,
            'group_name': self.group_name,
            'owed_by_me': str(self.owed_by_me),
            'owed_to_me': str(self.owed_to_me),
            'net': str(self.net),
        }


@dataclass
class GlobalSummary:
    owed_by_me: Decimal = ZERO
    owed_to_me: Decimal = ZERO
    net: Decimal = ZERO
    by_group: List[GroupSummary] = field(default_factory=list)

    def to_dict(self):
        return {
            'owed_by_me': str(self.owed_by_me),
            'owed_to_me': str(self.owed_to_me),
            'net': str(self.net),
            'by_group': [g.to_dict() for g in self.by_group],
        }


def _accumulate(rows, totals):
    total = ZERO
    for row in rows:
        amount = to_decimal(row.amount)
        total += amount
        acc = totals.setdefault(row.group_id, {'name': row.group_name or '', 'sum': ZERO})
        acc['sum'] += amount
    return total


def compute_summary_from_rows(user_id, owed_rows, to_me_rows) -> GlobalSummary:
    owed_by_group = {}
    to_me_by_group = {}
    owed_by_me = _accumulate(owed_rows, owed_by_group)
    owed_to_me = _accumulate([r for r in to_me_rows if r.paid_by == user_id], to_me_by_group)

    by_group = []
    for gid in list(owed_by_group) + [g for g in to_me_by_group if g not in owed_by_group]:
        owed = owed_by_group.get(gid, {}).get('sum', ZERO)
        to_me = to_me_by_group.get(gid, {}).get('sum', ZERO)
        name = to_me_by_group.get(gid, {}).get('name') or owed_by_group.get(gid, {}).get('name') or ''
        by_group.append(GroupSummary(gid, name, round2(owed), round2(to_me), round2(to_me - owed)))

    return GlobalSummary(
        owed_by_me=round2(owed_by_me),
        owed_to_me=round2(owed_to_me),
        net=round2(owed_to_me - owed_by_me),
        by_group=by_group,
    )


def _split_rows(*criteria) -> List[SplitRow]:
    query = (
        db.select(ExpenseSplit.amount, Expense.group_id, Group.name, Expense.payer_id)
        .join(Expense, ExpenseSplit.expense_id == Expense.id)
        .join(Group, Expense.group_id == Group.id)
        .where(*criteria)
        .order_by(Expense.group_id, Expense.id)
    )
    return [SplitRow(amount, gid, name, payer) for amount, gid, name, payer in db.session.execute(query)]


def get_user_summary(user_id) -> GlobalSummary:
    owed_rows = _split_rows(ExpenseSplit.user_id == user_id)
    to_me_rows = _split_rows(Expense.payer_id == user_id)
    return compute_summary_from_rows(user_id, owed_rows, to_me_rows)
