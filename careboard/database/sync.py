"""
Hosted record store, change feed and the client sync session

- PatientStore is the hosted table: load/insert/update/delete by id plus a
  change feed filtered by owner key
- InMemoryPatientStore keeps rows in process; every open client of the same
  process sees the same table and feed
- SyncSession is one client's view: optimistic local writes, a local JSON
  mirror, and per-record echo suppression for feed events caused by its own
  in-flight writes
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from threading import Lock, RLock
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set

from careboard.core import config
from careboard.database import storage
from careboard.database.schemas import Patient, SyncState
from careboard.services.patient_details import fields_to_row, patient_to_row, row_to_patient

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Hosted store rejected or failed an operation"""


class RecordNotFoundError(LookupError):
    """No record with the given id"""


@dataclass
class FeedCallbacks:
    on_insert: Optional[Callable[[Dict[str, Any]], None]] = None
    on_update: Optional[Callable[[Dict[str, Any]], None]] = None
    on_delete: Optional[Callable[[str], None]] = None


class Subscription:
    """Handle returned by ChangeFeed.subscribe"""

    def __init__(self, feed: "ChangeFeed", owner_key: str, callbacks: FeedCallbacks):
        self.feed = feed
        self.owner_key = owner_key
        self.callbacks = callbacks
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.feed.remove(self)
            self.active = False


class ChangeFeed:
    """
    Fan-out of row changes to the subscribers of an owner key

    Each published change is delivered at most once to each subscriber, in
    subscription order, on the publishing thread.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Subscription]] = {}
        self._lock = Lock()

    def subscribe(self, owner_key: str, callbacks: FeedCallbacks) -> Subscription:
        subscription = Subscription(self, owner_key, callbacks)
        with self._lock:
            self._subscribers.setdefault(owner_key, []).append(subscription)
        logger.info(f"Feed subscription opened for {owner_key}")
        return subscription

    def remove(self, subscription: Subscription):
        with self._lock:
            subscribers = self._subscribers.get(subscription.owner_key, [])
            if subscription in subscribers:
                subscribers.remove(subscription)
        logger.info(f"Feed subscription closed for {subscription.owner_key}")

    def subscriber_count(self, owner_key: str) -> int:
        with self._lock:
            return len(self._subscribers.get(owner_key, []))

    def publish(self, owner_key: str, event: str, payload: Any):
        with self._lock:
            subscribers = list(self._subscribers.get(owner_key, []))
        for subscription in subscribers:
            callback = getattr(subscription.callbacks, f"on_{event}")
            if callback is None:
                continue
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Feed subscriber failed handling {event} event")


class PatientStore(ABC):
    """
    Hosted patient table
    """

    @abstractmethod
    def load_all(self, owner_key: str) -> List[Dict[str, Any]]:
        """All rows of an owner, newest first"""

    @abstractmethod
    def insert(self, owner_key: str, row: Dict[str, Any]):
        ...

    @abstractmethod
    def update(self, record_id: str, fields: Dict[str, Any]):
        ...

    @abstractmethod
    def delete(self, record_id: str):
        ...

    @abstractmethod
    def subscribe(self, owner_key: str, callbacks: FeedCallbacks) -> Subscription:
        ...


class InMemoryPatientStore(PatientStore):
    """
    Process-local hosted table with a synchronous change feed
    """

    def __init__(self):
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._lock = RLock()
        self.feed = ChangeFeed()

    def load_all(self, owner_key: str) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [dict(row) for row in self._rows.values() if row.get("user_id") == owner_key]
        rows.sort(key=lambda row: row.get("created_at") or "", reverse=True)
        logger.info(f"Loaded {len(rows)} row(s) for {owner_key}")
        return rows

    def insert(self, owner_key: str, row: Dict[str, Any]):
        record_id = str(row["id"])
        with self._lock:
            if record_id in self._rows:
                raise StoreError(f"Duplicate patient id {record_id}")
            stored = {**row, "id": record_id, "user_id": owner_key}
            self._rows[record_id] = stored
        logger.info(f"Inserted patient {record_id}")
        self.feed.publish(owner_key, "insert", dict(stored))

    def update(self, record_id: str, fields: Dict[str, Any]):
        with self._lock:
            row = self._rows.get(record_id)
            if row is None:
                raise RecordNotFoundError(record_id)
            row.update(fields)
            row["updated_at"] = datetime.now().isoformat()
            published = dict(row)
        logger.info(f"Updated patient {record_id}: {', '.join(sorted(fields))}")
        self.feed.publish(published["user_id"], "update", published)

    def delete(self, record_id: str):
        with self._lock:
            row = self._rows.pop(record_id, None)
        if row is None:
            raise RecordNotFoundError(record_id)
        logger.info(f"Deleted patient {record_id}")
        self.feed.publish(row["user_id"], "delete", record_id)

    def subscribe(self, owner_key: str, callbacks: FeedCallbacks) -> Subscription:
        return self.feed.subscribe(owner_key, callbacks)


class SyncSession:
    """
    One client's synchronized view of the patient table

    Local edits are applied and mirrored first, then written to the hosted
    store. While a write to a record is in flight the record holds an echo
    token naming the fields being written; feed updates for that record keep
    the local value of those fields and take every other field from the feed.
    Tokens are per record, so concurrent changes to other records always apply.
    Each write holds its own token; overlapping writes to one record keep it
    protected until the last of them returns.
    """

    def __init__(
        self,
        owner_key: str,
        store: PatientStore,
        prefer_remote_on_mismatch: bool = config.PREFER_REMOTE_ON_MISMATCH,
    ):
        self.owner_key = owner_key
        self.store = store
        self.prefer_remote_on_mismatch = prefer_remote_on_mismatch
        self.state = SyncState.IDLE
        self.last_error: Optional[str] = None
        self._patients: Dict[str, Patient] = {}
        self._pending: Dict[str, List[Set[str]]] = {}
        self._subscription: Optional[Subscription] = None
        self._lock = RLock()

    # ------------------------------------------------------------------
    # lifecycle

    def start(self):
        """
        Load the local mirror and the hosted rows, reconcile, then subscribe

        An empty hosted store is seeded from the local mirror, so records kept
        locally across a store reset stay writable.
        """
        self.last_error = None
        storage.cleanup_stale_cache(self.owner_key)
        local = self._read_mirror()
        self._set_all(local)

        self.state = SyncState.SYNCING
        try:
            remote = [row_to_patient(row) for row in self.store.load_all(self.owner_key)]
        except StoreError as e:
            logger.error(f"Initial load failed for {self.owner_key}: {e}")
            self.last_error = str(e)
            self.state = SyncState.ERROR
            return

        if not remote and local:
            self._push_all(local)
        elif remote:
            if not local:
                self._set_all(remote)
            elif len(remote) != len(local):
                logger.warning(
                    f"Hosted store has {len(remote)} patient(s), local mirror has {len(local)}; "
                    f"using {'hosted' if self.prefer_remote_on_mismatch else 'local'} data"
                )
                if self.prefer_remote_on_mismatch:
                    self._set_all(remote)
        self._persist()

        self._subscription = self.store.subscribe(
            self.owner_key,
            FeedCallbacks(
                on_insert=self._on_insert,
                on_update=self._on_update,
                on_delete=self._on_delete,
            ),
        )
        self.state = SyncState.ERROR if self.last_error else SyncState.SYNCED

    def stop(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self.state = SyncState.IDLE

    # ------------------------------------------------------------------
    # reads

    def list_patients(self) -> List[Patient]:
        with self._lock:
            return list(self._patients.values())

    def get(self, record_id: str) -> Patient:
        with self._lock:
            patient = self._patients.get(record_id)
        if patient is None:
            raise RecordNotFoundError(record_id)
        return patient

    def is_pending(self, record_id: str) -> bool:
        return record_id in self._pending

    def _pending_fields(self, record_id: str) -> Optional[Set[str]]:
        """Union of the fields of every write to a record still in flight"""
        tokens = self._pending.get(record_id)
        if tokens is None:
            return None
        return set().union(*tokens)

    # ------------------------------------------------------------------
    # optimistic writes

    def add_patient(self, patient: Patient) -> Patient:
        with self._lock:
            self._patients = {patient.id: patient, **self._patients}
            self._persist()
        with self.suppress_echo(patient.id, Patient.model_fields):
            self.store.insert(self.owner_key, patient_to_row(patient))
        return patient

    def update_fields(self, record_id: str, fields: Dict[str, Any]) -> Patient:
        """
        Apply a partial update locally, then write the changed fields remotely

        A record missing from the hosted store is inserted whole instead.

        Raises:
            RecordNotFoundError: unknown id
            pydantic.ValidationError: the merged record is invalid
        """
        with self._lock:
            current = self.get(record_id)
            updated = Patient.model_validate({**current.model_dump(), **fields, "updated_at": datetime.now()})
            self._patients[record_id] = updated
            self._persist()
        with self.suppress_echo(record_id, fields):
            try:
                self.store.update(record_id, fields_to_row(updated, fields))
            except RecordNotFoundError:
                logger.warning(f"Patient {record_id} missing from hosted store, inserting full record")
                self.store.insert(self.owner_key, patient_to_row(updated))
        return updated

    def remove_patient(self, record_id: str):
        with self._lock:
            if record_id not in self._patients:
                raise RecordNotFoundError(record_id)
            del self._patients[record_id]
            self._persist()
        with self.suppress_echo(record_id, ()):
            try:
                self.store.delete(record_id)
            except RecordNotFoundError:
                logger.info(f"Patient {record_id} was already absent from hosted store")

    def import_patients(self, patients: Iterable[Patient]) -> Dict[str, int]:
        """Insert new ids, overwrite existing ones (last write wins)"""
        inserted = updated = 0
        for patient in patients:
            if patient.id in self._patients:
                self.update_fields(patient.id, patient.model_dump(exclude={"id", "created_at"}))
                updated += 1
            else:
                self.add_patient(patient)
                inserted += 1
        return {"inserted": inserted, "updated": updated}

    @contextmanager
    def suppress_echo(self, record_id: str, fields: Iterable[str]) -> Iterator[None]:
        """
        Mark fields of a record as locally written for the duration of a remote write

        Store failures are logged and recorded in the session state; the local
        edit stands and is not retried.
        """
        with self._lock:
            token = set(fields)
            self._pending.setdefault(record_id, []).append(token)
            self.state = SyncState.ECHO_SUPPRESSED
        try:
            yield
        except StoreError as e:
            logger.error(f"Remote write for patient {record_id} failed: {e}")
            self.last_error = str(e)
            self.state = SyncState.ERROR
        else:
            self.state = SyncState.SYNCED
        finally:
            with self._lock:
                tokens = self._pending[record_id]
                tokens.remove(token)
                if not tokens:
                    del self._pending[record_id]

    # ------------------------------------------------------------------
    # feed handlers

    def _on_insert(self, row: Dict[str, Any]):
        patient = row_to_patient(row)
        with self._lock:
            if patient.id in self._patients or patient.id in self._pending:
                logger.debug(f"Ignoring insert echo for patient {patient.id}")
                return
            self._patients = {patient.id: patient, **self._patients}
            self._persist()

    def _on_update(self, row: Dict[str, Any]):
        remote = row_to_patient(row)
        with self._lock:
            pending = self._pending_fields(remote.id)
            local = self._patients.get(remote.id)
            if pending is not None and local is None:
                logger.debug(f"Ignoring update for locally deleted patient {remote.id}")
                return
            if pending and local is not None:
                merged = {**remote.model_dump(), **local.model_dump(include=pending)}
                remote = Patient.model_validate(merged)
                logger.debug(f"Merged feed update for patient {remote.id}, kept local {', '.join(sorted(pending))}")
            self._patients[remote.id] = remote
            self._persist()

    def _on_delete(self, record_id: str):
        with self._lock:
            if self._patients.pop(str(record_id), None) is not None:
                self._persist()

    # ------------------------------------------------------------------
    # local mirror

    def _push_all(self, patients: List[Patient]):
        """Upload mirror-only records to an empty hosted store"""
        logger.warning(f"Hosted store has no patients for {self.owner_key}, uploading {len(patients)} from local mirror")
        for patient in patients:
            try:
                self.store.insert(self.owner_key, patient_to_row(patient))
            except StoreError as e:
                logger.error(f"Upload of patient {patient.id} failed: {e}")
                self.last_error = str(e)

    def _set_all(self, patients: Iterable[Patient]):
        with self._lock:
            self._patients = {patient.id: patient for patient in patients}

    def _read_mirror(self) -> List[Patient]:
        return [row_to_patient(row) for row in storage.get_patients(self.owner_key)]

    def _persist(self):
        storage.save_patients(
            [patient_to_row(patient) for patient in self._patients.values()],
            self.owner_key,
        )


_store: Optional[PatientStore] = None
_session: Optional[SyncSession] = None
_session_lock = Lock()


def get_store() -> PatientStore:
    global _store
    if _store is None:
        _store = InMemoryPatientStore()
    return _store


def get_session() -> SyncSession:
    """
    Board-wide session for the clinic owner key, started on first use
    """
    global _session
    with _session_lock:
        if _session is None:
            _session = SyncSession(config.CLINIC_OWNER_KEY, get_store())
            _session.start()
        return _session


def reset_session(store: Optional[PatientStore] = None):
    """Stop the current session and optionally swap the hosted store"""
    global _session, _store
    with _session_lock:
        if _session is not None:
            _session.stop()
        _session = None
        if store is not None:
            _store = store
