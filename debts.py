# debts.py
"""
Person-to-person debts for one group.

Split rows give directed debts (split owner -> expense payer), settlements
pay down the directed debt (from -> to), and the two directions of every
pair are then netted into a single edge.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Tuple
import logging

from balances import display_name
from money import ZERO, is_negligible, round2, to_decimal

logger = logging.getLogger(__name__)


@dataclass
class DebtDetail:
    from_user_id: object  # debtor
    to_user_id: object    # creditor
    amount: Decimal
    debtor_name: str
    creditor_name: str

    def to_dict(self):
        return {
            'from_user_id': self.from_user_id,
            'to_user_id': self.to_user_id,
            'amount': str(self.amount),
            'debtor_name': self.debtor_name,
            'creditor_name': self.creditor_name,
        }


@dataclass
class UserDebts:
    i_owe: List[DebtDetail] = field(default_factory=list)
    owed_to_me: List[DebtDetail] = field(default_factory=list)


def _directed_debts(expenses, splits, settlements) -> Dict[Tuple[object, object], Decimal]:
    payer_of = {e.id: e.payer_id for e in expenses}
    matrix = defaultdict(lambda: ZERO)

    for s in splits:
        if s.expense_id not in payer_of:
            continue
        creditor = payer_of[s.expense_id]
        if s.user_id != creditor:
            matrix[(s.user_id, creditor)] += to_decimal(s.amount)

    for st in settlements:
        matrix[(st.from_user_id, st.to_user_id)] -= to_decimal(st.amount)

    return matrix


def _net_pairs(matrix) -> Dict[Tuple[object, object], Decimal]:
    """Collapse (a, b) and (b, a) into one signed amount keyed by (low, high)."""
    net = {}
    for (debtor, creditor), amount in matrix.items():
        if debtor <= creditor:
            key, signed = (debtor, creditor), amount
        else:
            key, signed = (creditor, debtor), -amount
        net[key] = net.get(key, ZERO) + signed
    return net


def calculate_debt_details(expenses, splits, settlements, members) -> List[DebtDetail]:
    """Netted debts, one edge per member pair, largest first."""
    names = {m.id: display_name(m) for m in members}

    def name_of(uid):
        return names.get(uid) or str(uid)[:8]

    details = []
    for (low, high), amount in _net_pairs(_directed_debts(expenses, splits, settlements)).items():
        amount = round2(amount)
        if is_negligible(amount):
            continue
        if amount > ZERO:
            debtor, creditor = low, high
        else:
            debtor, creditor, amount = high, low, -amount
        details.append(DebtDetail(debtor, creditor, amount, name_of(debtor), name_of(creditor)))

    details.sort(key=lambda d: d.amount, reverse=True)
    logger.debug('netted %d debt edges', len(details))
    return details


def filter_by_user(details: List[DebtDetail], user_id) -> UserDebts:
    return UserDebts(
        i_owe=[d for d in details if d.from_user_id == user_id and d.amount > ZERO],
        owed_to_me=[d for d in details if d.to_user_id == user_id and d.amount > ZERO],
    )
