"""Base class for the data services: uniform database error contract."""
import logging
from typing import Callable, NoReturn, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from pdv.exceptions import PdvError, DataAccessError, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class BaseService:
    """
    Shared plumbing for Product/Customer/Sale/Auth services.

    Services receive a session factory (``pdv.database.get_session`` in the
    application, a test session in the suite) instead of reaching for a
    global. Every SQLAlchemy failure leaves the service as a
    ``DataAccessError("<context>: <message>")``; application errors
    (``PdvError``) pass through untouched.
    """

    def __init__(self, session_factory: Callable):
        self._session_factory = session_factory

    @property
    def session(self):
        return self._session_factory()

    def handle_error(self, error: Exception, context: str) -> NoReturn:
        error_message = str(getattr(error, 'orig', None) or error) or 'Erro desconhecido'
        logger.error(f"Erro em {context}: {error}")
        raise DataAccessError(f"{context}: {error_message}") from error

    def execute_query(self, query_fn: Callable[..., T], context: str,
                      not_found_message: Optional[str] = None) -> T:
        """
        Run a read. With ``not_found_message`` a ``None`` result raises
        NotFoundError instead of being returned.
        """
        session = self.session
        try:
            data = query_fn(session)
        except PdvError:
            raise
        except SQLAlchemyError as e:
            session.rollback()
            self.handle_error(e, context)

        if data is None and not_found_message:
            raise NotFoundError(not_found_message)
        return data

    def execute_command(self, command_fn: Callable[..., T], context: str) -> T:
        """Run a write and commit it; roll back on any failure."""
        session = self.session
        try:
            result = command_fn(session)
            session.commit()
            return result
        except PdvError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            self.handle_error(e, context)
