"""Remote store interface and the conditional read-merge-write helper."""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from ..errors import StoreConflictError

logger = logging.getLogger(__name__)

DEFAULT_MERGE_ATTEMPTS = 5

ModelT = TypeVar("ModelT", bound=BaseModel)


class ObjectStore(ABC):
    """Hierarchical key/value store holding JSON documents and uploaded files.

    Every JSON write returns a version token; passing it back as ``if_match``
    makes the write conditional on nobody having written the key since.
    ``if_none_match`` makes the write succeed only when the key is absent.
    """

    name: str

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def read_json_versioned(self, key: str) -> Tuple[Optional[Any], Optional[str]]:
        """Return ``(payload, token)``, or ``(None, None)`` when the key is absent."""

    @abstractmethod
    def write_json(
        self,
        key: str,
        value: Any,
        *,
        tags: Optional[Mapping[str, str]] = None,
        if_match: Optional[str] = None,
        if_none_match: bool = False,
    ) -> str:
        ...

    @abstractmethod
    def upload_file(self, local: Path, key: str) -> str:
        """Upload ``local`` to ``key`` and return its public reference."""

    def read_json(self, key: str, default: Any = None) -> Any:
        payload, _ = self.read_json_versioned(key)
        if payload is None:
            return copy.deepcopy(default)
        return payload


def merge_json(
    store: ObjectStore,
    key: str,
    model_type: Type[ModelT],
    mutate: Callable[[ModelT], None],
    *,
    attempts: int = DEFAULT_MERGE_ATTEMPTS,
) -> ModelT:
    """Apply ``mutate`` to the document at ``key`` with compare-and-swap semantics.

    A missing document starts from a fresh ``model_type()``. When another writer
    got in between the read and the write, the document is re-read and the
    mutation re-applied on top of the newer state.
    """

    for attempt in range(1, attempts + 1):
        payload, token = store.read_json_versioned(key)
        current = model_type.model_validate(payload) if payload is not None else model_type()
        mutate(current)
        body = current.model_dump(mode="json", by_alias=True, exclude_none=True)
        try:
            store.write_json(key, body, if_match=token, if_none_match=token is None)
        except StoreConflictError:
            logger.info("Concurrent update of %s (attempt %d/%d); merging again", key, attempt, attempts)
            continue
        return current
    raise StoreConflictError(key)
