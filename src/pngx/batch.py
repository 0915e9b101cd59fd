from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence, TypeVar

from .errors import InvalidBatchArguments, PngxError
from .models import BatchItem, BatchResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


def check_explicit_path(ids: Sequence[int], explicit_path: Optional[Path]) -> None:
    if explicit_path is not None and len(ids) != 1:
        raise InvalidBatchArguments(
            f"--file can only be used with a single document ID (got {len(ids)})"
        )


def run_batch(
    ids: Sequence[int],
    op: Callable[[int], T],
    *,
    explicit_path: Optional[Path] = None,
) -> BatchResult[T]:
    """Run ``op`` for every ID, one after another, in the order given.

    Duplicated IDs run again. A :class:`PngxError` from one ID is recorded on
    its item and the remaining IDs still run; other exceptions propagate.
    ``explicit_path`` is validated before any ``op`` call.
    """
    check_explicit_path(ids, explicit_path)

    result: BatchResult[T] = BatchResult()
    for document_id in ids:
        try:
            value = op(document_id)
        except PngxError as e:
            logger.info("document %s failed: %s", document_id, e)
            result.items.append(BatchItem(id=document_id, error=e))
            continue
        result.items.append(BatchItem(id=document_id, value=value))
    return result
