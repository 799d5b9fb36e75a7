import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

from expiry_reconciler.core.config import ReconcileConfig
from expiry_reconciler.core.exceptions import (
    ConfigurationError,
    DocumentStoreError,
    NotFoundError,
    ReconcilerError,
    StoreError,
)
from expiry_reconciler.schemas.reconcile import RunResult, RunStatus
from expiry_reconciler.utils.firestore_utils import convert_firestore_timestamp, to_utc

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class KeySource(Protocol):
    def members(self, set_name: str) -> List[str]: ...

    def remove_members(self, set_name: str, keys: List[str]) -> int: ...


class DocumentStore(Protocol):
    def get_document(self, collection: str, key: str) -> Dict[str, Any]: ...

    def merge_update(self, collection: str, key: str, fields: Dict[str, Any]) -> None: ...


def compute_expiry(current: Any, increment: timedelta, now: datetime) -> datetime:
    """
    Compute the new expiry for a document.

    Args:
        current: The stored expire field value, if any
        increment: The duration to add
        now: The current time, used when there is no usable stored value

    Returns:
        The new expiry as a UTC datetime
    """
    base = convert_firestore_timestamp(current)
    if base is None:
        base = to_utc(now)
    return base + increment


class ReconcileService:
    """
    Bumps the expire field of every document whose id is pending in a Redis
    set, then clears the processed ids from the set.

    Processing is sequential and fail-fast: the first fatal store error ends
    the run and no keys are removed. Documents already written in that run
    keep their new expiry, so a later run will bump them again.
    """

    def __init__(self, key_source: KeySource, document_store: DocumentStore, clock: Optional[Clock] = None):
        self.key_source = key_source
        self.document_store = document_store
        self.clock = clock or utc_now

    def run(self, key_set_name: str, collection_name: str, expire_field_name: str,
            increment: timedelta) -> RunResult:
        """
        Validate the parameters and reconcile one batch.

        Args:
            key_set_name: Name of the Redis set holding pending document ids
            collection_name: Firestore collection of the documents
            expire_field_name: Timestamp field to bump
            increment: Positive duration added to the expiry

        Returns:
            The outcome of the run
        """
        try:
            config = ReconcileConfig.create(key_set_name, collection_name, expire_field_name, increment)
        except ConfigurationError as e:
            logger.error(f"Invalid configuration: {e.message}")
            return RunResult(
                status=RunStatus.configuration_error,
                error=e.message,
                error_code=e.code,
            )
        return self.reconcile(config)

    def reconcile(self, config: ReconcileConfig) -> RunResult:
        """
        Reconcile one batch with an already validated configuration.

        Returns:
            The outcome of the run
        """
        result = RunResult()

        try:
            batch = self.key_source.members(config.key_set_name)
        except StoreError as e:
            return self._failed(result, e)

        result.batch = list(batch)
        if not result.batch:
            logger.info(f"No pending keys in {config.key_set_name}")
            return result

        logger.info(f"Reconciling {len(result.batch)} keys from {config.key_set_name} "
                    f"into {config.collection_name}.{config.expire_field_name}")

        for key in result.batch:
            try:
                new_expiry = self._process_key(config, key)
            except StoreError as e:
                e.key = e.key or key
                return self._failed(result, e)

            if new_expiry is None:
                result.skipped.append(key)
            else:
                result.updated[key] = new_expiry

        try:
            self.key_source.remove_members(config.key_set_name, result.batch)
        except StoreError as e:
            logger.warning(f"{len(result.updated)} documents were updated but their keys remain in "
                           f"{config.key_set_name}; the next run will extend them again")
            return self._failed(result, e, key_failure=False)

        result.removed = list(result.batch)
        logger.info(f"Reconcile completed. Stats: {result.summary()}")
        return result

    def _process_key(self, config: ReconcileConfig, key: str) -> Optional[datetime]:
        """Bump one document's expiry. Returns None when the document is missing."""
        try:
            document = self.document_store.get_document(config.collection_name, key)
        except NotFoundError:
            logger.info(f"Document {config.collection_name}/{key} not found, skipping")
            return None

        current = document.get(config.expire_field_name)
        try:
            new_expiry = compute_expiry(current, config.increment, self.clock())
        except OverflowError as e:
            raise DocumentStoreError(
                f"expiry of {config.collection_name}/{key} ({current!r}) plus {config.increment} "
                f"is out of range",
                key=key,
            ) from e
        self.document_store.merge_update(
            config.collection_name,
            key,
            {config.expire_field_name: new_expiry},
        )
        logger.debug(f"Set {config.collection_name}/{key}.{config.expire_field_name} to {new_expiry.isoformat()}")
        return new_expiry

    def _failed(self, result: RunResult, error: ReconcilerError, key_failure: bool = True) -> RunResult:
        logger.error(f"Reconcile aborted: {error.message}")
        result.status = RunStatus.store_error
        result.error = error.message
        result.error_code = error.code
        result.failed_key = error.key if key_failure else None
        return result


def run_reconcile(key_source: KeySource, document_store: DocumentStore, config: ReconcileConfig,
                  clock: Optional[Clock] = None) -> RunResult:
    """Run one reconciliation pass."""
    service = ReconcileService(key_source, document_store, clock=clock)
    return service.reconcile(config)
