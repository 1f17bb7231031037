"""Best-effort cache of correlation results per (account, repository)."""

from vibe_history.config import Config
from vibe_history.errors import CachePersistFailure
from vibe_history.logging import get_logger
from vibe_history.models import CorrelationResult, Repository, cache_key
from vibe_history.cache.store import ResultStore, SQLiteResultStore

logger = get_logger("cache")


class ResultCache:
    """Reads and writes correlation results through a ResultStore.

    Reads that fail are treated as misses and writes that fail are logged
    and reported as False; neither raises.
    """

    def __init__(self, store: ResultStore) -> None:
        self._store = store

    def get(self, account_id: str, repository: Repository) -> CorrelationResult | None:
        key = cache_key(account_id, repository)
        try:
            document = self._store.get(key)
        except Exception:
            logger.exception("Cache read failed, treating as miss: key=%s", key)
            return None

        if document is None:
            return None

        try:
            return CorrelationResult.from_dict(document)
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding undecodable cached result: key=%s", key)
            return None

    def put(self, account_id: str, repository: Repository, result: CorrelationResult) -> bool:
        """Upsert a result, replacing any previous one for the key.

        Returns:
            True if the result was persisted
        """
        key = cache_key(account_id, repository)
        try:
            self._write(key, result)
        except CachePersistFailure:
            logger.exception("Cache write failed, result not persisted: key=%s", key)
            return False

        logger.info("Cached result: key=%s links=%d", key, len(result.links))
        return True

    def _write(self, key: str, result: CorrelationResult) -> None:
        try:
            self._store.put(key, result.to_dict())
        except Exception as e:
            raise CachePersistFailure(f"Failed to persist result for {key}") from e

    def delete(self, account_id: str, repository: Repository) -> bool:
        return self._store.delete(cache_key(account_id, repository))

    def delete_account(self, account_id: str) -> int:
        return self._store.delete_account(account_id)


def create_store(config: Config) -> ResultStore:
    """Build the result store selected by configuration."""
    backend = config.cache.backend
    if backend == "sqlite":
        return SQLiteResultStore(config.cache.db_path)
    if backend == "typesense":
        from vibe_history.cache.typesense_store import TypesenseResultStore

        store = TypesenseResultStore(config.typesense)
        store.ensure_collection()
        return store
    raise ValueError(f"Unknown cache backend: {backend}")
