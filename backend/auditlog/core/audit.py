"""Admin activity recording.

Two ways in:

* ``AdminLogRecorder.record_if_privileged`` / ``record_unconditional`` for
  code that wants to write a record itself.
* ``admin_loggable`` to declare once, at route registration, what an
  operation does. The wrapped operation runs untouched; afterwards the entity
  id and a detail line are derived from the call and handed to the recorder.

Recording is a side channel. Whatever goes wrong while building or writing a
record is logged and dropped, the wrapped operation's outcome is never
changed by it.
"""

import functools
import inspect
import logging
import typing
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol, runtime_checkable

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from auditlog.core.authorization import AuthorizationResolver, default_resolver
from auditlog.core.request_context import RequestContext, get_request_context
from auditlog.models.admin_log import IP_ADDRESS_MAX_LENGTH, AdminAction, AdminEntityType, AdminLog
from auditlog.services.admin_logs.store import AdminLogStore, get_admin_log_store

logger = logging.getLogger(__name__)

RECORDER_PARAM = "admin_log_recorder"


@runtime_checkable
class HasIdentifier(Protocol):
    """Results exposing an integer ``id`` can be matched to the record."""

    id: int


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _declares_int(parameter: Optional[inspect.Parameter]) -> bool:
    if parameter is None:
        return False
    annotation = parameter.annotation
    if annotation is int or annotation == "int":
        return True
    # Optional[int] / int | None
    return int in typing.get_args(annotation) and type(None) in typing.get_args(annotation)


def extract_entity_id(
    signature: inspect.Signature,
    arguments: Mapping[str, Any],
    result: Any,
    id_param: str = "id",
) -> Optional[int]:
    """Work out which resource an operation touched.

    The integer ``id`` argument wins; otherwise the result's ``id`` is used.
    ``None`` means no single resource (collection reads, or nothing found).
    """
    if _declares_int(signature.parameters.get(id_param)):
        value = arguments.get(id_param)
        if _is_int(value):
            return value

    if result is not None and isinstance(result, HasIdentifier):
        value = result.id
        if _is_int(value):
            return value

    return None


def build_details(template: str, operation_name: str, context: Optional[RequestContext]) -> str:
    details = template if template else f"Method: {operation_name}"
    if context is not None and context.method and context.path:
        details = f"{details} | {context.method} {context.path}"
    return details


def _source_address(context: Optional[RequestContext]) -> Optional[str]:
    if context is None or not context.client_address:
        return None
    # header-supplied, so cut to the column width rather than lose the record
    return context.client_address[:IP_ADDRESS_MAX_LENGTH]


@dataclass(frozen=True)
class LoggableOperation:
    name: str
    action: AdminAction
    entity_type: AdminEntityType
    details: str
    id_param: str
    signature: inspect.Signature

    def arguments(self, args: tuple, kwargs: Mapping[str, Any]) -> Mapping[str, Any]:
        return self.signature.bind_partial(*args, **kwargs).arguments


class AdminLogRecorder:
    def __init__(
        self,
        store: AdminLogStore,
        context: Optional[RequestContext] = None,
        resolver: Optional[AuthorizationResolver] = None,
    ):
        self.store = store
        self.context = context
        self.resolver = resolver or default_resolver()

    def is_privileged(self) -> bool:
        return self.resolver.is_privileged_actor(self.context)

    def record_if_privileged(
        self,
        action: AdminAction,
        entity_type: AdminEntityType,
        entity_id: Optional[int] = None,
        details: Optional[str] = None,
    ) -> Optional[AdminLog]:
        """Write a record for the current actor; silently skip non-admins."""
        if not self.is_privileged():
            return None

        record = AdminLog(
            admin_username=self.resolver.current_actor_identity(self.context),
            action=action,
            entity_type=entity_type,
            entity_id=entity_id if entity_id is not None else 0,
            details=details,
            ip_address=_source_address(self.context),
        )
        return self._append(record)

    def record_unconditional(
        self,
        admin_username: str,
        action: AdminAction,
        entity_type: AdminEntityType,
        entity_id: Optional[int] = None,
        details: Optional[str] = None,
    ) -> Optional[AdminLog]:
        """Write a record for a system event; no privilege check, no request needed."""
        record = AdminLog(
            admin_username=admin_username,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id if entity_id is not None else 0,
            details=details,
        )
        return self._append(record)

    def record_operation(
        self,
        operation: LoggableOperation,
        args: tuple,
        kwargs: Mapping[str, Any],
        result: Any,
    ) -> Optional[AdminLog]:
        try:
            if not self.is_privileged():
                return None

            entity_id = extract_entity_id(
                operation.signature,
                operation.arguments(args, kwargs),
                result,
                id_param=operation.id_param,
            )
            details = build_details(operation.details, operation.name, self.context)
            record = self.record_if_privileged(operation.action, operation.entity_type, entity_id, details)
            logger.debug(
                "admin_log_recorded action=%s entity_type=%s entity_id=%s",
                operation.action.name,
                operation.entity_type.name,
                entity_id,
            )
            return record
        except Exception:
            logger.exception("Failed to record admin log for %s", operation.name)
            return None

    def _append(self, record: AdminLog) -> Optional[AdminLog]:
        try:
            return self.store.append(record)
        except SQLAlchemyError:
            logger.exception(
                "Failed to persist admin log action=%s entity_type=%s",
                record.action.name,
                record.entity_type.name,
            )
            return None


def get_admin_log_recorder(
    context: RequestContext = Depends(get_request_context),
    store: AdminLogStore = Depends(get_admin_log_store),
) -> AdminLogRecorder:
    return AdminLogRecorder(store, context=context)


def _signature(func: Callable) -> inspect.Signature:
    try:
        return inspect.signature(func, eval_str=True)
    except (NameError, TypeError):
        return inspect.signature(func)


def _with_recorder_parameter(signature: inspect.Signature) -> inspect.Signature:
    recorder = inspect.Parameter(
        RECORDER_PARAM,
        inspect.Parameter.KEYWORD_ONLY,
        default=Depends(get_admin_log_recorder),
        annotation=AdminLogRecorder,
    )
    params = list(signature.parameters.values())
    if params and params[-1].kind is inspect.Parameter.VAR_KEYWORD:
        params.insert(len(params) - 1, recorder)
    else:
        params.append(recorder)
    return signature.replace(parameters=params)


def admin_loggable(
    action: AdminAction,
    entity_type: AdminEntityType,
    details: str = "",
    id_param: str = "id",
):
    """Record successful calls of the decorated operation in the admin log.

    The wrapper takes an extra keyword-only ``admin_log_recorder`` argument,
    which FastAPI fills from ``get_admin_log_recorder``. Plain callers pass a
    recorder explicitly or get no record. Exceptions raised by the operation
    propagate and nothing is recorded for that call.
    """

    def decorator(func: Callable) -> Callable:
        signature = _signature(func)
        operation = LoggableOperation(
            name=func.__name__,
            action=action,
            entity_type=entity_type,
            details=details,
            id_param=id_param,
            signature=signature,
        )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                recorder = kwargs.pop(RECORDER_PARAM, None)
                result = await func(*args, **kwargs)
                if isinstance(recorder, AdminLogRecorder):
                    await run_in_threadpool(recorder.record_operation, operation, args, kwargs, result)
                return result

            wrapper = async_wrapper
        else:

            @functools.wraps(func)
            def sync_wrapper(*args, **kwargs):
                recorder = kwargs.pop(RECORDER_PARAM, None)
                result = func(*args, **kwargs)
                if isinstance(recorder, AdminLogRecorder):
                    recorder.record_operation(operation, args, kwargs, result)
                return result

            wrapper = sync_wrapper

        wrapper.__signature__ = _with_recorder_parameter(signature)
        wrapper.admin_loggable = operation
        return wrapper

    return decorator
