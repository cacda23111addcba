"""Manager-gated withdrawal of applications."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable

from bto_alloc.engine.applications import ApplicationStateMachine
from bto_alloc.exceptions import AllocationError, ErrorCode
from bto_alloc.models.housing import Application, WithdrawalRequest, WithdrawalStatus
from bto_alloc.store.housing import HousingDataStore


class WithdrawalWorkflow:
    """Overlay on an application that, once approved, reverses its inventory effect."""

    def __init__(
        self,
        store: HousingDataStore,
        applications: ApplicationStateMachine,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.applications = applications
        self.clock = clock

    def request(self, application: Application, reason: str) -> WithdrawalRequest:
        """Open a PENDING withdrawal request."""
        if not application.is_active:
            raise AllocationError(
                ErrorCode.NOT_WITHDRAWABLE,
                f"Application {application.application_id} is {application.status.value}",
            )
        if self.store.get_pending_withdrawal(application.application_id) is not None:
            raise AllocationError(
                ErrorCode.DUPLICATE_REQUEST,
                f"Application {application.application_id} already has a pending withdrawal",
            )

        request = WithdrawalRequest(
            request_id=f"wdr-{uuid.uuid4().hex[:12]}",
            application_id=application.application_id,
            reason=reason,
            status=WithdrawalStatus.PENDING,
            requested_at=self.clock(),
        )
        self.store.add_withdrawal(request)
        return request

    def decide(self, request: WithdrawalRequest, approve: bool, decided_by: str) -> None:
        """Approve (release + WITHDRAWN) or reject a PENDING request."""
        if request.status != WithdrawalStatus.PENDING:
            raise AllocationError(
                ErrorCode.NOT_APPROVABLE,
                f"Withdrawal {request.request_id} is {request.status.value}",
            )

        if approve:
            application = self.store.get_application(request.application_id)
            self.applications.withdraw(application)

        request.status = WithdrawalStatus.APPROVED if approve else WithdrawalStatus.REJECTED
        request.decided_at = self.clock()
        request.decided_by = decided_by
