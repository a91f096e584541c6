"""Shared plumbing for the domain stores."""
import logging
from typing import Callable, Optional

from pdv.exceptions import PdvError
from pdv.services.result import OperationResult

logger = logging.getLogger(__name__)


class BaseStore:
    """
    A store wraps one data service and keeps the last loaded rows.

    Store operations turn application errors into a failed
    ``OperationResult`` with a destructive notification; unexpected
    exceptions propagate to the app-level handler.
    """

    def __init__(self, service):
        self.service = service
        self.items = []
        self.loading = False

    def _run(self, operation: Callable, error_title: str,
             success_title: Optional[str] = None, success_description: str = '') -> OperationResult:
        try:
            data = operation()
        except PdvError as e:
            logger.warning(f"{error_title}: {e.message}")
            return OperationResult.failure(e, error_title)
        return OperationResult.success(data, success_title, success_description)

    def load(self) -> OperationResult:
        raise NotImplementedError
