"""BaseService: shared foundation for pangea services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pangea.services.result import ServiceError, ServiceResult

if TYPE_CHECKING:
    from pangea.domain.errors import PangeaError
    from pangea.infrastructure.workspace import Workspace

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service classes; holds the injected :class:`Workspace`."""

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    @staticmethod
    def _failure(
        op: str,
        exc: PangeaError,
        *,
        data: dict[str, Any] | None = None,
        warnings: list[str] | None = None,
    ) -> ServiceResult:
        """Convert a raised :class:`PangeaError` into a failed result."""
        logger.debug("%s failed: %s", op, exc.message)
        return ServiceResult(
            ok=False,
            op=op,
            data=data or {},
            warnings=warnings or [],
            error=ServiceError.from_exception(exc),
        )
