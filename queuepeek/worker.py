import logging
from typing import List

from .models import Keys
from .storage import Store

logger = logging.getLogger(__name__)


def _belongs_to(name: str, identity: str) -> bool:
    return name == identity or name.startswith(identity + ":")


def unregister_worker(store: Store, prefix: str, identity: str) -> List[str]:
    """
    Drop every registered worker named ``identity`` or ``identity:...`` along with
    its state, started and per-worker stat keys.

    There is no liveness check: if the process is still running it will keep
    working but disappear from resque-web/sidekiq until it re-registers.
    Deleting a key that is already gone is not an error.
    """
    keys = Keys(prefix)
    removed = []
    for name in sorted(store.members_of_set(keys.workers)):
        if not _belongs_to(name, identity):
            continue
        logger.warning("unregistering worker %s", name)
        store.remove_from_set(keys.workers, name)
        for key in (
            keys.worker(name),
            keys.worker_started(name),
            keys.worker_processed(name),
            keys.worker_failed(name),
        ):
            store.delete(key)
        removed.append(name)
    if not removed:
        logger.info("no registered worker matches %s", identity)
    return removed
