"""Typed failures raised by the ledger, membership and account services.

Every class carries a stable ``kind`` string and the HTTP status the API
answers with. The app registers a single handler for ``LedgerError`` so
routes never build these responses by hand.
"""


class LedgerError(Exception):
    kind = 'LedgerError'
    status_code = 400
    default_message = 'Request failed'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'message': self.message, 'error': self.kind}


class NotFound(LedgerError):
    kind = 'NotFound'
    status_code = 404
    default_message = 'Not found'


class InvalidPayload(LedgerError):
    kind = 'InvalidPayload'
    status_code = 400
    default_message = 'Invalid data'


class InvalidAmount(LedgerError):
    kind = 'InvalidAmount'
    status_code = 400
    default_message = 'Amount must be a positive number with at most two decimals'


class Unauthenticated(LedgerError):
    kind = 'Unauthenticated'
    status_code = 401
    default_message = 'Could not validate credentials'


class NotAMember(LedgerError):
    kind = 'NotAMember'
    status_code = 403
    default_message = 'Not a member of this group'


class NotAuthorized(LedgerError):
    kind = 'NotAuthorized'
    status_code = 403
    default_message = 'Not allowed to perform this action'


class NoSuchBalance(LedgerError):
    kind = 'NoSuchBalance'
    status_code = 409
    default_message = 'Nothing is owed to this member'


class OverSettlement(LedgerError):
    kind = 'OverSettlement'
    status_code = 409
    default_message = 'Settlement exceeds the outstanding balance'


class DuplicateInvitation(LedgerError):
    kind = 'DuplicateInvitation'
    status_code = 409
    default_message = 'An invitation is already pending'


class AlreadyMember(LedgerError):
    kind = 'AlreadyMember'
    status_code = 409
    default_message = 'Account is already a member of this group'


class InvalidTransition(LedgerError):
    kind = 'InvalidTransition'
    status_code = 409
    default_message = 'Invitation has already been answered'


class OutstandingBalance(LedgerError):
    kind = 'OutstandingBalance'
    status_code = 409
    default_message = 'Can remove a member only when their settlement is done'


class DuplicateAccount(LedgerError):
    kind = 'DuplicateAccount'
    status_code = 409
    default_message = 'Username or email already registered'


class ConcurrentModification(LedgerError):
    kind = 'ConcurrentModification'
    status_code = 409
    default_message = 'The group was modified concurrently, retry the request'

    def to_dict(self):
        data = super().to_dict()
        data['retry'] = True
        return data


class InvalidOtp(LedgerError):
    kind = 'InvalidOtp'
    status_code = 401
    default_message = 'Incorrect OTP'


class OtpExpired(LedgerError):
    kind = 'OtpExpired'
    status_code = 410
    default_message = 'OTP has expired, request a new one'
