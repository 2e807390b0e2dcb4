"""Socket.IO server and best-effort push of group changes.

The connection table lives for the life of the process only; clients
re-register when they reconnect after a restart.
"""
import logging
import threading
from collections import defaultdict

from flask_socketio import SocketIO

from splitledger.db import db
from splitledger.helper.balances import group_balances
from splitledger.models import Group

logger = logging.getLogger(__name__)

socketio = SocketIO()


class ConnectionRegistry:
    """Maps account ids to the socket ids they are connected with."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sids = defaultdict(set)
        self._accounts = {}

    def register(self, account_id, sid):
        with self._lock:
            self._sids[account_id].add(sid)
            self._accounts[sid] = account_id

    def unregister(self, sid):
        with self._lock:
            account_id = self._accounts.pop(sid, None)
            if account_id is not None:
                self._sids[account_id].discard(sid)
                if not self._sids[account_id]:
                    del self._sids[account_id]
            return account_id

    def account_for(self, sid):
        with self._lock:
            return self._accounts.get(sid)

    def sids_for(self, account_id):
        with self._lock:
            return list(self._sids.get(account_id, ()))

    def is_connected(self, account_id):
        with self._lock:
            return account_id in self._sids

    def clear(self):
        with self._lock:
            self._sids.clear()
            self._accounts.clear()


connections = ConnectionRegistry()


def notify_accounts(account_ids, event, payload):
    for account_id in set(account_ids):
        for sid in connections.sids_for(account_id):
            try:
                socketio.emit(event, payload, to=sid)
            except Exception:
                # delivery is best-effort, a dead socket must not fail the request
                logger.warning("Could not emit %s to account %s", event, account_id, exc_info=True)


def group_view(group):
    return {
        'group': group.to_dict(),
        'balances': [balance.to_dict() for balance in group_balances(group.id)],
    }


def notify_group(group_id, event='groupUpdated'):
    try:
        group = db.session.get(Group, group_id)
        if group is None:
            return
        account_ids = [member.account_id for member in group.members]
        if not any(connections.is_connected(account_id) for account_id in account_ids):
            return
        notify_accounts(account_ids, event, group_view(group))
    except Exception:
        logger.warning("Could not notify members of group %s", group_id, exc_info=True)
