"""
Result type returned by stores and the checkout workflow.

Operations never raise for expected failures: they return an
OperationResult carrying either the data or the error, plus the
notification the presentation layer should show (toast, JSON body).
"""
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class Notification:
    """User-facing message (title + description + variant)."""
    title: str
    description: str = ''
    variant: str = 'default'  # 'default' | 'destructive'

    def to_dict(self) -> dict:
        return {'title': self.title, 'description': self.description, 'variant': self.variant}


@dataclass
class OperationResult:
    """Success/error variant of a workflow operation."""
    ok: bool
    data: Any = None
    error: Optional[Exception] = None
    notification: Optional[Notification] = None
    outcome: str = field(default='')

    @classmethod
    def success(cls, data=None, title: Optional[str] = None, description: str = '', outcome: str = 'ok'):
        notification = Notification(title, description) if title else None
        return cls(ok=True, data=data, notification=notification, outcome=outcome)

    @classmethod
    def failure(cls, error: Exception, title: str, description: Optional[str] = None, outcome: str = 'error'):
        message = description if description is not None else getattr(error, 'message', str(error))
        return cls(
            ok=False,
            error=error,
            notification=Notification(title, message, 'destructive'),
            outcome=outcome,
        )

    @property
    def status_code(self) -> int:
        if self.ok:
            return 200
        return getattr(self.error, 'status_code', 500)

    def to_dict(self) -> dict:
        rv = {'status': 'success' if self.ok else 'error', 'outcome': self.outcome}
        if self.notification:
            rv['notification'] = self.notification.to_dict()
            if not self.ok:
                rv['message'] = self.notification.description
        return rv
