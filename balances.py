# balances.py
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Tuple

from money import ZERO, CENT, round2, to_decimal


@dataclass
class Balance:
    user_id: object
    name: str
    amount: Decimal  # positive: the group owes this member

    def to_dict(self):
        return {'user_id': self.user_id, 'name': self.name, 'amount': str(self.amount)}


def display_name(member) -> str:
    return getattr(member, 'name', None) or str(member.id)[:8]


def _splits_by_expense(splits) -> Dict[object, list]:
    grouped = defaultdict(list)
    for s in splits:
        grouped[s.expense_id].append(s)
    return grouped


def calculate_balances(members, expenses, splits, settlements) -> List[Balance]:
    """
    Return one Balance per member, in member order.
    The payer is credited with what the others owe on that expense (sum of its
    splits), not with the raw expense amount. Splits of unknown expenses are ignored.
    """
    net = {m.id: ZERO for m in members}
    by_expense = _splits_by_expense(splits)

    for e in expenses:
        expense_splits = by_expense.get(e.id, [])
        owed_to_payer = sum((to_decimal(s.amount) for s in expense_splits), ZERO)
        net[e.payer_id] = net.get(e.payer_id, ZERO) + owed_to_payer
        for s in expense_splits:
            net[s.user_id] = net.get(s.user_id, ZERO) - to_decimal(s.amount)

    for st in settlements:
        amount = to_decimal(st.amount)
        net[st.from_user_id] = net.get(st.from_user_id, ZERO) + amount
        net[st.to_user_id] = net.get(st.to_user_id, ZERO) - amount

    return [Balance(m.id, display_name(m), round2(net[m.id])) for m in members]


def calculate_user_balance(user_id, expenses, splits, settlements) -> Decimal:
    """Same figure as calculate_balances for one member, without building the map."""
    balance = ZERO
    by_expense = _splits_by_expense(splits)

    for e in expenses:
        expense_splits = by_expense.get(e.id, [])
        if e.payer_id == user_id:
            balance += sum((to_decimal(s.amount) for s in expense_splits), ZERO)
        for s in expense_splits:
            if s.user_id == user_id:
                balance -= to_decimal(s.amount)

    for st in settlements:
        if st.from_user_id == user_id:
            balance += to_decimal(st.amount)
        if st.to_user_id == user_id:
            balance -= to_decimal(st.amount)

    return round2(balance)


def filter_relevant_settlements(expenses, settlements) -> list:
    """Drop settlements recorded before the oldest expense in the window."""
    if not expenses:
        return []
    oldest = min(e.created_at for e in expenses)
    return [s for s in settlements if s.created_at >= oldest]


def calculate_debts(balances: List[Balance]) -> List[Tuple[object, object, Decimal]]:
    """
    Greedy settle-up suggestion:
    returns list of (from_id, to_id, amount), largest creditor/debtor first.
    Not guaranteed to be the fewest possible transfers.
    """
    creditors = []
    debtors = []
    for b in balances:
        if b.amount >= CENT:
            creditors.append([b.user_id, b.amount])
        elif b.amount <= -CENT:
            debtors.append([b.user_id, -b.amount])

    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    transfers = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor_id, debt_amt = debtors[i]
        cred_id, cred_amt = creditors[j]
        amt = min(debt_amt, cred_amt)
        transfers.append((debtor_id, cred_id, round2(amt)))
        debtors[i][1] -= amt
        creditors[j][1] -= amt
        if debtors[i][1] < CENT:
            i += 1
        if creditors[j][1] < CENT:
            j += 1
    return transfers
