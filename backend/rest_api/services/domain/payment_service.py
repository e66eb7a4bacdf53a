"""
Payment Finalizer.

Closing a dining session is three steps, each committed on its own and
logged in the saga log:

    record_payment -> close_session -> release_table

A failing step stops the saga. Earlier steps stay applied, the saga is
marked FAILED and a PartialFailureError carries the saga id. Every step is
idempotent, so resume() replays only what did not complete.
"""

from __future__ import annotations

from sqlalchemy import select

from rest_api.models import DiningSession, Payment, RestaurantTable, SagaLog, new_uuid, utcnow
from rest_api.services.base_service import BaseService
from rest_api.services.events import ChangeOperation, EntityKind, record_change
from rest_api.services.permissions import Action, BranchScope, Module, StaffContext
from shared.config.constants import (
    PaymentMethod,
    PaymentStatus,
    SagaKind,
    SagaStatus,
    SagaStepStatus,
    SessionStatus,
    TableStatus,
)
from shared.config.logging import payments_logger as logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import (
    ConflictError,
    NotFoundError,
    PartialFailureError,
    SessionClosedError,
    ValidationError,
)
from shared.utils.money import display_amount, to_decimal
from .saga_log import add_step, finish_saga, get_saga, start_saga

PAYMENT_STEPS: tuple[str, ...] = ("record_payment", "close_session", "release_table")


class PaymentFinalizer(BaseService):
    """
    Session payment saga.

    Usage:
        payment, saga = PaymentFinalizer(db).finalize(session_id, scope, ctx)
        payment, saga = PaymentFinalizer(db).resume(saga_id, ctx)
    """

    def finalize(
        self,
        session_id: str,
        scope: BranchScope,
        ctx: StaffContext,
        method: PaymentMethod = PaymentMethod.CASH,
    ) -> tuple[Payment, SagaLog]:
        """
        Pay and close a dining session.

        Raises:
            CapabilityError: Role lacks payments_process.
            NotFoundError: Session not in scope.
            SessionClosedError: Session is already COMPLETED.
            ValidationError: Session has no orders.
            PartialFailureError: A step failed after earlier steps committed.
        """
        ctx.require(Module.PAYMENTS, Action.PROCESS)
        scope.require_single()

        session = self._db.scalar(
            scope.apply(select(DiningSession), DiningSession.branch_id)
            .where(DiningSession.id == session_id)
        )
        if session is None:
            raise NotFoundError("Dining session", session_id)
        if session.status != SessionStatus.IN_PROGRESS:
            raise SessionClosedError(session.id)
        if not session.billable_orders:
            raise ValidationError("Dining session has no billable orders", session_id=session.id)

        amount = session.grand_total
        saga = start_saga(
            self._db,
            SagaKind.PAYMENT_FINALIZE,
            session.id,
            franchise_id=ctx.franchise_id,
            branch_id=session.branch_id,
            context={"session_id": session.id, "method": method.value, "amount": str(amount)},
            started_by=ctx.staff_id,
        )
        logger.info(
            "Payment saga started",
            saga_id=saga.id,
            session_id=session.id,
            amount=display_amount(amount),
            staff_id=ctx.staff_id,
        )
        return self._run(saga, ctx)

    def resume(self, saga_id: str, ctx: StaffContext) -> tuple[Payment, SagaLog]:
        """
        Re-run the steps a FAILED payment saga did not complete.

        Raises:
            ConflictError: Saga is not a failed payment saga.
        """
        ctx.require(Module.PAYMENTS, Action.PROCESS)
        saga = get_saga(self._db, saga_id, ctx.franchise_id)
        if saga.kind != SagaKind.PAYMENT_FINALIZE:
            raise ConflictError(f"Saga {saga.id} is not a payment saga", saga_id=saga.id)
        if saga.status != SagaStatus.FAILED:
            raise ConflictError(
                f"Saga {saga.id} is {saga.status.value} and cannot be resumed",
                saga_id=saga.id,
            )

        saga.status = SagaStatus.RUNNING
        saga.failed_step = None
        saga.error = None
        saga.finished_at = None
        safe_commit(self._db)

        logger.info("Payment saga resumed", saga_id=saga.id, completed=saga.completed_step_names())
        return self._run(saga, ctx)

    # =========================================================================
    # Saga driver
    # =========================================================================

    def _run(self, saga: SagaLog, ctx: StaffContext) -> tuple[Payment, SagaLog]:
        session_id = saga.context["session_id"]
        method = PaymentMethod(saga.context.get("method", PaymentMethod.CASH.value))
        done = set(saga.completed_step_names())

        for name in PAYMENT_STEPS:
            if name in done:
                continue
            step = getattr(self, f"_{name}")
            try:
                if name == "record_payment":
                    step(session_id, ctx, method)
                else:
                    step(session_id, ctx)
                add_step(saga, name, SagaStepStatus.COMPLETED)
                safe_commit(self._db)
            except Exception as e:
                self._db.rollback()
                completed = saga.completed_step_names()
                add_step(saga, name, SagaStepStatus.FAILED, error=str(e))
                finish_saga(saga, SagaStatus.FAILED, failed_step=name, error=str(e))
                safe_commit(self._db)
                logger.error(
                    "Payment saga failed",
                    saga_id=saga.id,
                    failed_step=name,
                    completed_steps=completed,
                    error=str(e),
                )
                raise PartialFailureError(
                    "Payment finalization",
                    saga.id,
                    name,
                    completed,
                    session_id=session_id,
                ) from e

        finish_saga(saga, SagaStatus.COMPLETED)
        safe_commit(self._db)

        payment = self._db.scalar(select(Payment).where(Payment.dining_session_id == session_id))
        logger.info(
            "Payment saga completed",
            saga_id=saga.id,
            payment_id=payment.id,
            amount=display_amount(payment.amount),
        )
        return payment, saga

    # =========================================================================
    # Steps (each one idempotent)
    # =========================================================================

    def _record_payment(self, session_id: str, ctx: StaffContext, method: PaymentMethod) -> None:
        existing = self._db.scalar(select(Payment).where(Payment.dining_session_id == session_id))
        if existing is not None:
            return

        session = self._db.get(DiningSession, session_id)
        first_order = session.billable_orders[0]
        payment = Payment(
            id=new_uuid(),
            branch_id=session.branch_id,
            dining_session_id=session.id,
            order_id=first_order.id,
            amount=to_decimal(session.total_amount) + to_decimal(session.tax_amount),
            status=PaymentStatus.COMPLETED,
            method=method,
            processed_by=ctx.staff_id,
        )
        payment.set_created_by(ctx.staff_id)
        self._db.add(payment)
        record_change(
            self._db,
            EntityKind.PAYMENT,
            payment.id,
            ChangeOperation.INSERT,
            franchise_id=ctx.franchise_id,
            branch_id=session.branch_id,
            actor_staff_id=ctx.staff_id,
            changes={"dining_session_id": session.id, "amount": str(payment.amount)},
        )

    def _close_session(self, session_id: str, ctx: StaffContext) -> None:
        session = self._db.get(DiningSession, session_id)
        if session.status == SessionStatus.COMPLETED:
            return

        session.status = SessionStatus.COMPLETED
        session.is_bill_printed = True
        session.completed_at = utcnow()
        session.changed_by = ctx.staff_id
        session.set_updated_by(ctx.staff_id)
        record_change(
            self._db,
            EntityKind.DINING_SESSION,
            session.id,
            ChangeOperation.UPDATE,
            franchise_id=ctx.franchise_id,
            branch_id=session.branch_id,
            actor_staff_id=ctx.staff_id,
            changes={"status": SessionStatus.COMPLETED.value},
        )

    def _release_table(self, session_id: str, ctx: StaffContext) -> None:
        session = self._db.get(DiningSession, session_id)
        table = self._db.scalar(
            select(RestaurantTable).where(RestaurantTable.id == session.table_id).with_for_update()
        )
        if table.status == TableStatus.AVAILABLE:
            return

        # A newer session may already be seated at this table
        reopened = self._db.scalar(
            select(DiningSession.id).where(
                DiningSession.table_id == table.id,
                DiningSession.status == SessionStatus.IN_PROGRESS,
            )
        )
        if reopened is not None:
            logger.warning("Table not released, newer session open", table_id=table.id,
                           session_id=reopened)
            return

        table.status = TableStatus.AVAILABLE
        table.last_status_update = utcnow()
        table.set_updated_by(ctx.staff_id)
        record_change(
            self._db,
            EntityKind.TABLE,
            table.id,
            ChangeOperation.UPDATE,
            franchise_id=ctx.franchise_id,
            branch_id=table.branch_id,
            actor_staff_id=ctx.staff_id,
            changes={"status": TableStatus.AVAILABLE.value},
        )
