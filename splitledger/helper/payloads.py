from datetime import date, datetime

from splitledger.errors import InvalidAmount, InvalidPayload


def require_text(value, label):
    if not isinstance(value, str) or not value.strip():
        raise InvalidPayload(f"{label} is required")
    return value.strip()


def optional_text(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidPayload("Expected a string value")
    return value.strip() or None


def parse_id(value, label='id'):
    if isinstance(value, bool):
        raise InvalidPayload(f"Invalid {label}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidPayload(f"Invalid {label}")


def parse_member_ids(values):
    if not isinstance(values, (list, tuple)) or not values:
        raise InvalidAmount('At least one participant is required')
    return sorted({parse_id(value, 'member id') for value in values})


def parse_date(value):
    if value is None or value == '':
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).strip()).date()
    except ValueError:
        raise InvalidPayload("Invalid date, expected YYYY-MM-DD")


def process_entry_data(data):
    """Request body of a new ledger entry, mapped onto ``record_entry`` arguments."""
    return {
        'payer_id': data.get('payer_id'),
        'participant_ids': data.get('participants'),
        'amount': data.get('amount'),
        'category': data.get('category'),
        'title': data.get('title'),
        'entry_date': data.get('date'),
        'note': data.get('note'),
        'attachment_url': data.get('attachment_url'),
    }


def process_transaction_data(data):
    return {
        'kind': data.get('type'),
        'amount': data.get('amount'),
        'category': data.get('category'),
        'title': data.get('title'),
        'transaction_date': data.get('date'),
        'notes': data.get('notes'),
        'invoice_url': data.get('invoice_url'),
    }
