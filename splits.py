# splits.py
"""
Split strategies: turn one expense into the rows each member owes.

Every strategy is pure and shares the same call shape:

    build(expense_id, amount, payer_id, member_ids, custom=None, beneficiary_id=None)

None of them checks that the rows add up to the expense amount; that is
done by services.validate_expense_data before anything is persisted.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional
import logging

from errors import MissingParametersError, UnknownSplitTypeError
from money import ZERO, round2, to_decimal

logger = logging.getLogger(__name__)


class SplitType(Enum):
    EQUAL = 'equal'
    FULL = 'full'
    CUSTOM = 'custom'
    PERCENT = 'percent'
    EACH = 'each'


@dataclass
class Split:
    expense_id: object
    user_id: object
    amount: Decimal


class SplitStrategy(ABC):

    @abstractmethod
    def build(self, expense_id, amount, payer_id, member_ids: List,
              custom: Optional[Dict] = None, beneficiary_id=None) -> List[Split]:
        pass


class EqualSplitStrategy(SplitStrategy):
    """Everyone except the payer owes round2(amount / n). Remainder cents stay with the payer."""

    def build(self, expense_id, amount, payer_id, member_ids, custom=None, beneficiary_id=None):
        if not member_ids:
            return []
        per_person = round2(to_decimal(amount) / len(member_ids))
        return [Split(expense_id, uid, per_person) for uid in member_ids if uid != payer_id]


class EachSplitStrategy(EqualSplitStrategy):
    """Each member pays their own equal part; same numbers as EqualSplitStrategy."""


class FullSplitStrategy(SplitStrategy):
    """A single member owes the whole amount to the payer."""

    def build(self, expense_id, amount, payer_id, member_ids, custom=None, beneficiary_id=None):
        debtor_id = beneficiary_id
        if debtor_id is None and custom:
            debtor_id = next(iter(custom))
        if debtor_id is None:
            debtor_id = next((uid for uid in member_ids if uid != payer_id), None)
        if debtor_id is None:
            logger.debug('full split for expense %s has no beneficiary', expense_id)
            return []
        return [Split(expense_id, debtor_id, round2(amount))]


class CustomSplitStrategy(SplitStrategy):

    def build(self, expense_id, amount, payer_id, member_ids, custom=None, beneficiary_id=None):
        out = []
        for uid, value in (custom or {}).items():
            value = to_decimal(value)
            # non-positive entries are dropped, not rejected
            if uid == payer_id or value <= 0:
                continue
            out.append(Split(expense_id, uid, round2(value)))
        return out


class PercentSplitStrategy(SplitStrategy):
    """`custom` maps member id -> percentage of the amount."""

    def build(self, expense_id, amount, payer_id, member_ids, custom=None, beneficiary_id=None):
        if custom is None:
            raise MissingParametersError('Percent split requires a percentage per member')
        amount = to_decimal(amount)
        out = []
        for uid in member_ids:
            if uid == payer_id:
                continue
            share = round2(amount * to_decimal(custom.get(uid, 0)) / 100)
            if share > ZERO:
                out.append(Split(expense_id, uid, share))
        return out


registry: Dict[SplitType, SplitStrategy] = {
    SplitType.EQUAL: EqualSplitStrategy(),
    SplitType.FULL: FullSplitStrategy(),
    SplitType.CUSTOM: CustomSplitStrategy(),
    SplitType.PERCENT: PercentSplitStrategy(),
    SplitType.EACH: EachSplitStrategy(),
}


def parse_split_type(value) -> SplitType:
    if isinstance(value, SplitType):
        return value
    try:
        return SplitType(str(value).lower())
    except ValueError:
        raise UnknownSplitTypeError(f'Split strategy not found: {value}') from None


def get_split_strategy(split_type) -> SplitStrategy:
    return registry[parse_split_type(split_type)]


def build_splits(split_type, expense_id, amount, payer_id, member_ids,
                 custom=None, beneficiary_id=None) -> List[Split]:
    strategy = get_split_strategy(split_type)
    return strategy.build(expense_id, amount, payer_id, list(member_ids),
                          custom=custom, beneficiary_id=beneficiary_id)
