import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)


class BatchItem(NamedTuple):
    name: str
    content: str


@dataclass
class BatchItemResult:
    filename: str
    success: bool
    statistics: Optional[Any] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        stats = self.statistics.to_dict() if self.statistics is not None else None
        return {"filename": self.filename, "success": self.success, "statistics": stats, "error": self.error}


@dataclass
class BatchResult:
    total: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0
    results: List[BatchItemResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
            "results": [item.to_dict() for item in self.results],
        }


def _unpack(item) -> Tuple[str, str]:
    if isinstance(item, Mapping):
        return item["name"], item["content"]
    name, content = item
    return name, content


def batch_process(deobfuscator, items) -> BatchResult:
    """
    Deobfuscates each (name, content) item in order, one at a time.
    A fault on one item is recorded against it and the rest still run.
    """
    items = list(items)
    batch = BatchResult(total=len(items))

    for index, item in enumerate(items):
        name = f"item-{index + 1}"
        try:
            name, content = _unpack(item)
            result = deobfuscator.deobfuscate(content)
            batch.results.append(BatchItemResult(
                filename=name,
                success=result.success,
                statistics=result.statistics,
                error=result.error,
            ))
        except Exception as e:
            logger.warning("Batch item %s failed: %s", name, e)
            batch.results.append(BatchItemResult(filename=name, success=False, error=str(e)))

    batch.processed = len(batch.results)
    batch.successful = sum(1 for result in batch.results if result.success)
    batch.failed = batch.processed - batch.successful
    return batch
