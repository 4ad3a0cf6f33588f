"""Dynamic invocation of registered list operations."""

from __future__ import annotations

import logging
from typing import Any, Callable

from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError

from ..registry.descriptor import ListOperation
from .errors import InvocationError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], Any]


class OperationInvoker:
    """Calls a ListOperation on the client of its service.

    Every invocation is exactly one remote call: no caching, batching,
    pagination or retries.

    Attributes:
        client_factory: Returns the client for a service name
    """

    def __init__(self, client_factory: ClientFactory) -> None:
        self.client_factory = client_factory

    def invoke(self, operation: ListOperation, **args: Any) -> Any:
        """Call an operation with its static params merged with runtime args.

        Args:
            operation: Operation to call
            **args: Runtime (scoping) arguments

        Returns:
            Opaque response of the remote call

        Raises:
            InvocationError: If the operation is missing, the arguments are
                rejected, or the remote call fails
        """
        params = {**operation.params, **args}

        try:
            client = self.client_factory(operation.service)
        except (BotoCoreError, ClientError) as e:
            raise InvocationError(
                f"Cannot create {operation.service} client: {e}",
                service=operation.service,
                method=operation.method,
            ) from e

        method = getattr(client, operation.method, None)
        if method is None or not callable(method):
            raise InvocationError(
                f"{operation.service} client has no operation {operation.method}",
                service=operation.service,
                method=operation.method,
            )

        logger.debug(f"Invoking {operation} with {params}")

        try:
            return method(**params)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            error_message = e.response.get("Error", {}).get("Message", str(e))
            raise InvocationError(
                f"{operation} failed: {error_code} - {error_message}",
                service=operation.service,
                method=operation.method,
                error_code=error_code,
            ) from e
        except ParamValidationError as e:
            raise InvocationError(
                f"{operation} rejected arguments: {e}",
                service=operation.service,
                method=operation.method,
            ) from e
        except BotoCoreError as e:
            raise InvocationError(
                f"{operation} failed: {e}",
                service=operation.service,
                method=operation.method,
            ) from e
        except TypeError as e:
            raise InvocationError(
                f"{operation} called with wrong arguments: {e}",
                service=operation.service,
                method=operation.method,
            ) from e
