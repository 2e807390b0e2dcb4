import logging
import threading
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from splitledger.db import db
from splitledger.errors import ConcurrentModification, NotFound
from splitledger.models import Group

logger = logging.getLogger(__name__)

LOCK_STRIPES = 64

# fixed pool, groups hash onto it so memory does not grow with the ids seen
_group_locks = tuple(threading.RLock() for _ in range(LOCK_STRIPES))


def _lock_for(group_id):
    return _group_locks[hash(group_id) % LOCK_STRIPES]


@contextmanager
def group_transaction(group_id):
    """Run a group mutation as one serialized, all-or-nothing transaction.

    Writers of the same group queue on a process-local lock and on the
    group row (``SELECT ... FOR UPDATE``). Versioned PairBalance rows catch
    whatever slips past both; that surfaces as ConcurrentModification.
    """
    with _lock_for(group_id):
        try:
            group = (Group.query
                     .filter_by(id=group_id)
                     .with_for_update()
                     .populate_existing()
                     .first())
            if group is None:
                raise NotFound('Group not found')
            yield group
            db.session.commit()
        except (StaleDataError, IntegrityError) as e:
            db.session.rollback()
            logger.warning("Conflicting update on group %s: %s", group_id, e)
            raise ConcurrentModification() from e
        except Exception:
            db.session.rollback()
            raise
