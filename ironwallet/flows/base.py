"""Shared plumbing for the flow classes."""

from typing import Optional

from ironwallet.audit import AuditLogger
from ironwallet.config import AppSettings, get_settings
from ironwallet.errors import ValidationFailedError
from ironwallet.models.audit import AuditEvent
from ironwallet.models.finance import ValidationResult
from ironwallet.services.storage import WalletStorageInterface
from ironwallet.validation import WalletValidator


class BaseFlow:
    """
    Holds the storage, audit logger, validator and settings a flow needs.

    The audit logger is optional; without one nothing is audited.
    """

    def __init__(
        self,
        storage: WalletStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[WalletValidator] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app
        self._validator = validator or WalletValidator(self._settings)

    async def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    async def _refuse(self, event: AuditEvent, error: Exception) -> None:
        """Audit a refused action; the caller raises the error afterwards."""
        if self._audit_logger:
            await self._audit_logger.log_refusal(event, error)

    @staticmethod
    def _require_valid(result: ValidationResult) -> ValidationResult:
        if not result.is_valid:
            raise ValidationFailedError(result)
        return result
