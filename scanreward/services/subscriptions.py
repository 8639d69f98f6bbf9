"""
Change subscriptions.

Lets the client screens follow their registrations and gifts live:

    def on_change(snapshot):
        ...

    with ChangeSubscription(Registration, on_change, client_id='c1'):
        ...  # every committed insert/update of c1's registrations is delivered

Changes are collected at flush time and delivered only once the
transaction commits; a rollback discards them. A failing callback is
logged and does not affect the writer or the other subscribers.
"""
import logging
import uuid
from typing import Any, Callable, Dict

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class ChangeSubscription:
    """
    Deliver committed snapshots of rows of `model` matching `filters`.

    Args:
        model: Mapped class with a to_dict() method
        callback: Called with each snapshot dict after commit
        **filters: Attribute equality filters (e.g. client_id='c1')
    """

    def __init__(self, model, callback: Callable[[Dict[str, Any]], None], **filters):
        self.model = model
        self.callback = callback
        self.filters = filters
        self._key = f'subscription_{uuid.uuid4().hex}'
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, obj) -> bool:
        if not isinstance(obj, self.model):
            return False
        return all(getattr(obj, name, None) == value for name, value in self.filters.items())

    def start(self) -> 'ChangeSubscription':
        if self._active:
            return self
        event.listen(Session, 'after_flush', self._after_flush)
        event.listen(Session, 'after_commit', self._after_commit)
        event.listen(Session, 'after_soft_rollback', self._after_rollback)
        self._active = True
        logger.debug(f"Subscribed to {self.model.__name__} changes {self.filters}")
        return self

    def stop(self) -> None:
        if not self._active:
            return
        event.remove(Session, 'after_flush', self._after_flush)
        event.remove(Session, 'after_commit', self._after_commit)
        event.remove(Session, 'after_soft_rollback', self._after_rollback)
        self._active = False

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_value, traceback):
        self.stop()
        return False

    def _after_flush(self, session, flush_context):
        changed = [obj for obj in list(session.new) + list(session.dirty) if self.matches(obj)]
        if not changed:
            return
        pending = session.info.setdefault(self._key, {})
        for obj in changed:
            # Keyed by identity so several flushes in one transaction deliver
            # only the latest state of each row
            pending[id(obj)] = obj.to_dict()

    def _after_commit(self, session):
        pending = session.info.pop(self._key, None)
        if not pending:
            return
        for snapshot in pending.values():
            try:
                self.callback(snapshot)
            except Exception as e:
                logger.warning(f"{self.model.__name__} subscriber failed: {e}")

    def _after_rollback(self, session, previous_transaction):
        session.info.pop(self._key, None)
