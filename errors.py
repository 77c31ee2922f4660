# errors.py


class LedgerError(Exception):
    """Base error; the API turns it into {'error': ..., 'code': ...}."""
    status_code = 400
    code = 'ledger_error'

    def __init__(self, message=None):
        super().__init__(message or self.__doc__)
        self.message = message or self.__doc__

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class ValidationError(LedgerError):
    """Invalid input."""
    code = 'validation_error'


class InvalidAmountError(LedgerError):
    """Amount must be greater than 0."""
    code = 'invalid_amount'


class MissingBeneficiaryError(LedgerError):
    """A full split needs a beneficiary other than the payer."""
    status_code = 422
    code = 'missing_beneficiary'


class MissingParametersError(LedgerError):
    """Percent split requires a percentage per member."""
    code = 'missing_parameters'


class SplitSumMismatchError(LedgerError):
    """Split amounts do not add up to the expense amount."""
    status_code = 422
    code = 'split_sum_mismatch'


class SameMemberSettlementError(LedgerError):
    """A member cannot settle with themselves."""
    status_code = 422
    code = 'same_member_settlement'


class UnknownSplitTypeError(LedgerError):
    """Unknown split type."""
    code = 'unknown_split_type'
