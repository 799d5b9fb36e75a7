from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class RunStatus(str, Enum):
    success = "success"
    configuration_error = "configuration_error"
    store_error = "store_error"


class RunResult(BaseModel):
    """
    Outcome of one reconciliation run.

    On failure, `updated` still lists the documents written before the
    failing step; those writes are not rolled back.
    """
    status: RunStatus = RunStatus.success
    batch: List[str] = []
    updated: Dict[str, datetime] = {}
    skipped: List[str] = []
    removed: List[str] = []
    failed_key: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == RunStatus.success

    def summary(self) -> Dict[str, Any]:
        """Counts for logging."""
        stats: Dict[str, Any] = {
            'status': self.status.value,
            'batch_size': len(self.batch),
            'documents_updated': len(self.updated),
            'documents_missing': len(self.skipped),
            'keys_removed': len(self.removed),
        }
        if self.failed_key is not None:
            stats['failed_key'] = self.failed_key
        if self.error_code is not None:
            stats['error_code'] = self.error_code
        return stats
