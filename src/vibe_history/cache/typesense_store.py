"""Result store backed by a Typesense collection."""

import hashlib
import json
from typing import Any

import typesense
from typesense.exceptions import ObjectNotFound

from vibe_history.config import TypesenseConfig
from vibe_history.logging import get_logger

logger = get_logger("typesense_store")


def document_id(key: str) -> str:
    """Typesense document id for a result key.

    Result keys contain "/" (owner/name), which the client would put into
    the document URL unescaped, so documents are addressed by a hash.
    """
    return hashlib.sha256(key.encode()).hexdigest()


def collection_schema(name: str) -> dict[str, Any]:
    """Schema for the results collection.

    The full result is kept as a JSON string in `document`; only the fields
    used for lookups and deletes are indexed.
    """
    return {
        "name": name,
        "fields": [
            {"name": "id", "type": "string"},
            {"name": "key", "type": "string"},
            {"name": "account_id", "type": "string", "facet": True},
            {"name": "repo_full_name", "type": "string", "facet": True},
            {"name": "analyzed_at", "type": "string", "optional": True},
            {"name": "document", "type": "string", "index": False, "optional": True},
        ],
    }


class TypesenseResultStore:
    """Stores correlation results as Typesense documents.

    Documents are upserted by key, so the last writer wins.
    """

    def __init__(self, config: TypesenseConfig) -> None:
        """Initialize store with Typesense configuration.

        Args:
            config: TypesenseConfig with connection details
        """
        self._config = config
        self._collection = config.collection
        self._client = typesense.Client({
            "nodes": [{
                "host": config.host,
                "port": str(config.port),
                "protocol": config.protocol,
            }],
            "api_key": config.api_key,
            "connection_timeout_seconds": 5,
        })

    def ensure_collection(self) -> None:
        """Create the results collection if it doesn't exist."""
        try:
            self._client.collections[self._collection].retrieve()
            logger.debug("Collection already exists: collection=%s", self._collection)
        except ObjectNotFound:
            self._client.collections.create(collection_schema(self._collection))
            logger.info("Created collection: collection=%s", self._collection)

    def get(self, key: str) -> dict[str, Any] | None:
        try:
            doc = self._client.collections[self._collection].documents[document_id(key)].retrieve()
        except ObjectNotFound:
            return None
        return json.loads(doc["document"])

    def put(self, key: str, document: dict[str, Any]) -> None:
        self._client.collections[self._collection].documents.upsert({
            "id": document_id(key),
            "key": key,
            "account_id": document.get("accountId", ""),
            "repo_full_name": document.get("repoFullName", ""),
            "analyzed_at": document.get("analyzedAt"),
            "document": json.dumps(document),
        })

    def delete(self, key: str) -> bool:
        try:
            self._client.collections[self._collection].documents[document_id(key)].delete()
        except ObjectNotFound:
            return False
        return True

    def delete_account(self, account_id: str) -> int:
        # Backtick-quote the value so ids with special characters filter exactly
        result = self._client.collections[self._collection].documents.delete(
            {"filter_by": f"account_id:=`{account_id}`"}
        )
        return int(result.get("num_deleted", 0))
