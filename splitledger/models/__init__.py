from splitledger.models.account import Account, PendingRegistration
from splitledger.models.group import Group, Member, group_members
from splitledger.models.entry import LedgerEntry
from splitledger.models.balance import PairBalance
from splitledger.models.settlement import Settlement
from splitledger.models.invitation import Invitation
from splitledger.models.transaction import PersonalTransaction, MonthlyHistory

__all__ = [
    'Account', 'PendingRegistration', 'Group', 'Member', 'group_members', 'LedgerEntry', 'PairBalance',
    'Settlement', 'Invitation', 'PersonalTransaction', 'MonthlyHistory',
]
