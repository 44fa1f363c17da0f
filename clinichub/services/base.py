"""
Base Service Classes and Utilities

Foundation for the onboarding service layer: the error hierarchy shared by
every collaborator, the result type returned to API handlers, and the base
classes services derive from.
"""

import logging
from typing import Any, Dict, Optional, Generic, TypeVar, Callable
from datetime import datetime, timezone
from abc import ABC
from dataclasses import dataclass
import inspect
from functools import wraps

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, error_code: str = None, details: Dict[str, Any] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "SERVICE_ERROR"
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)


class ValidationError(ServiceError):
    """A request breaks a business rule."""

    def __init__(self, message: str, field: str = None, value: Any = None):
        super().__init__(message, "VALIDATION_ERROR", {"field": field, "value": value})
        self.field = field
        self.value = value


class NotFoundError(ServiceError):
    """Resource not found error."""

    def __init__(self, resource_type: str, identifier: Any):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, "NOT_FOUND", {"resource_type": resource_type, "identifier": identifier})


class ConflictError(ServiceError):
    """The write clashes with the resource's current state."""

    def __init__(self, message: str, conflicting_resource: str = None):
        super().__init__(message, "CONFLICT", {"conflicting_resource": conflicting_resource})


@dataclass
class ServiceResult(Generic[T]):
    """Outcome of a service method: data on success, the error otherwise."""
    success: bool
    data: Optional[T] = None
    error: Optional[ServiceError] = None

    @classmethod
    def success_result(cls, data: T) -> 'ServiceResult[T]':
        return cls(success=True, data=data)

    @classmethod
    def error_result(cls, error: ServiceError) -> 'ServiceResult[T]':
        return cls(success=False, error=error)


def _log_outcome(method_name: str, result: Any) -> None:
    if isinstance(result, ServiceResult) and not result.success:
        logger.error(f"[{method_name}] Operation failed: {result.error.message}")
    else:
        logger.info(f"[{method_name}] Operation completed")


def _failure(method_name: str, exc: Exception) -> ServiceResult:
    if isinstance(exc, ServiceError):
        logger.error(f"[{method_name}] Service error: {exc.message}")
        return ServiceResult.error_result(exc)
    logger.exception(f"[{method_name}] Unexpected error: {exc}")
    return ServiceResult.error_result(ServiceError(f"Internal error in {method_name}: {exc}", "INTERNAL_ERROR"))


def service_method(func: Callable) -> Callable:
    """
    Decorator for service methods.

    Checks the service was initialized and turns raised errors into an
    error ``ServiceResult``. Works on both plain and async methods.
    """

    @wraps(func)
    async def async_wrapper(self, *args, **kwargs):
        method_name = f"{self.__class__.__name__}.{func.__name__}"
        logger.debug(f"[{method_name}] Starting operation")
        try:
            self._validate_service_state()
            result = await func(self, *args, **kwargs)
        except Exception as e:
            return _failure(method_name, e)
        _log_outcome(method_name, result)
        return result

    @wraps(func)
    def sync_wrapper(self, *args, **kwargs):
        method_name = f"{self.__class__.__name__}.{func.__name__}"
        logger.debug(f"[{method_name}] Starting operation")
        try:
            self._validate_service_state()
            result = func(self, *args, **kwargs)
        except Exception as e:
            return _failure(method_name, e)
        _log_outcome(method_name, result)
        return result

    return async_wrapper if inspect.iscoroutinefunction(func) else sync_wrapper


class BaseService(ABC):
    """Abstract base class for all services."""

    def __init__(self, name: str = None):
        self.name = name or self.__class__.__name__
        self.logger = logging.getLogger(f"services.{self.name}")
        self._initialized = False

    def initialize(self) -> None:
        self._initialized = True
        self.logger.info(f"Service {self.name} initialized")

    def _validate_service_state(self) -> None:
        """Validate that the service is properly initialized."""
        if not self._initialized:
            raise ServiceError(f"Service {self.name} not initialized", "SERVICE_NOT_INITIALIZED")


class CachedService(BaseService):
    """
    Base service fronted by an external key/value cache.

    The cache must expose ``get``, ``set(key, value, ttl)`` and ``delete``
    (``RedisManager`` or ``RedisMock``). It only ever holds copies; the
    database stays the source of truth.
    """

    def __init__(self, name: str = None, cache=None, cache_ttl: int = 300, cache_prefix: str = None):
        super().__init__(name)
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._cache_prefix = cache_prefix or self.name.lower()

    def _get_cache_key(self, *args) -> str:
        return ":".join([self._cache_prefix] + [str(arg) for arg in args])

    def _get_from_cache(self, cache_key: str) -> Optional[Any]:
        """Get value from cache; any cache failure counts as a miss."""
        if self._cache is None:
            return None
        try:
            return self._cache.get(cache_key)
        except Exception as e:
            self.logger.warning(f"Cache read failed for {cache_key}: {e}")
            return None

    def _put_in_cache(self, cache_key: str, value: Any) -> None:
        if self._cache is None:
            return
        try:
            self._cache.set(cache_key, value, ttl=self._cache_ttl)
        except Exception as e:
            self.logger.warning(f"Cache write failed for {cache_key}: {e}")

    def _invalidate_cache(self, cache_key: str) -> None:
        if self._cache is None:
            return
        try:
            self._cache.delete(cache_key)
        except Exception as e:
            self.logger.warning(f"Cache invalidation failed for {cache_key}: {e}")
