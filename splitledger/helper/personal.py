"""Personal income/expense transactions and their monthly rollups."""
import logging

from sqlalchemy.exc import SQLAlchemyError

from splitledger.db import db
from splitledger.errors import InvalidPayload, NotFound
from splitledger.helper.money import to_money
from splitledger.helper.payloads import optional_text, parse_date, require_text
from splitledger.models import Account, MonthlyHistory, PersonalTransaction
from splitledger.models.transaction import EXPENSE, INCOME

logger = logging.getLogger(__name__)


def _locked_account(account_id):
    account = (Account.query
               .filter_by(id=account_id)
               .with_for_update()
               .populate_existing()
               .first())
    if account is None:
        raise NotFound('Account not found')
    return account


def _roll_up(account, transaction, sign):
    period = transaction.transaction_date
    history = MonthlyHistory.query.filter_by(account_id=account.id, year=period.year, month=period.month).first()
    if history is None:
        history = MonthlyHistory(account_id=account.id, year=period.year, month=period.month,
                                 income=0, expense=0, balance=0)
        db.session.add(history)

    delta = transaction.amount if sign > 0 else -transaction.amount
    if transaction.kind == INCOME:
        history.income += delta
        account.total_income += delta
        account.total_balance += delta
    else:
        history.expense += delta
        account.total_expense += delta
        account.total_balance -= delta
    history.balance = history.income - history.expense


def add_transaction(account_id, kind, amount, category, title, transaction_date=None, notes=None,
                    invoice_url=None):
    if kind not in (INCOME, EXPENSE):
        raise InvalidPayload("Type must be 'income' or 'expense'")
    amount = to_money(amount)
    category = require_text(category, "Category")
    title = require_text(title, "Title")
    transaction_date = parse_date(transaction_date)

    try:
        account = _locked_account(account_id)
        transaction = PersonalTransaction(account_id=account.id, kind=kind, amount=amount,
                                          category=category, title=title,
                                          notes=optional_text(notes), invoice_url=optional_text(invoice_url),
                                          transaction_date=transaction_date)
        db.session.add(transaction)
        _roll_up(account, transaction, 1)
        db.session.commit()
    except (SQLAlchemyError, NotFound):
        db.session.rollback()
        raise

    logger.info("Account %s recorded %s of %s", account_id, kind, amount)
    return transaction


def delete_transaction(account_id, transaction_id):
    try:
        account = _locked_account(account_id)
        transaction = PersonalTransaction.query.filter_by(id=transaction_id, account_id=account_id).first()
        if transaction is None:
            raise NotFound('Transaction not found')
        _roll_up(account, transaction, -1)
        data = transaction.to_dict()
        db.session.delete(transaction)
        db.session.commit()
    except (SQLAlchemyError, NotFound):
        db.session.rollback()
        raise
    return data


def list_transactions(account_id, year=None, month=None):
    query = PersonalTransaction.query.filter_by(account_id=account_id)
    if year is not None and month is not None:
        start = parse_date(f"{year:04d}-{month:02d}-01")
        end = parse_date(f"{year + month // 12:04d}-{month % 12 + 1:02d}-01")
        query = query.filter(PersonalTransaction.transaction_date >= start,
                             PersonalTransaction.transaction_date < end)
    return query.order_by(PersonalTransaction.transaction_date.desc(), PersonalTransaction.id.desc()).all()


def monthly_history(account_id):
    return (MonthlyHistory.query
            .filter_by(account_id=account_id)
            .order_by(MonthlyHistory.year.desc(), MonthlyHistory.month.desc())
            .all())
