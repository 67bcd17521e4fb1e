"""
Header + children write orchestration.

WHY: A sale or purchase order is one logical unit (header row, item rows and
the stock effects of the items), but it is written as several statements.

STATE MACHINE:
    VALIDATING -> CHECKING -> WRITING_HEADER -> WRITING_CHILDREN -> COMMITTED
                                                      |
                                                      v
                                               COMPENSATING -> FAILED
    (any earlier stage may also go straight to FAILED; nothing has been
    written yet at that point, so there is nothing to compensate)

WRITE MODES (Config.INVENTORY_WRITE_MODE):
- atomic: header, children and stock effects share one transaction. A
  failure rolls everything back. Used whenever the store supports it.
- compensating: the header commits on its own; children and stock effects
  commit second. If the second commit fails the header is deleted again.
  The delete is idempotent and retried; if it still fails the orphan header
  is logged at CRITICAL and recorded as a ReconciliationEvent. The caller
  always sees the error that triggered compensation.
"""
from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Callable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..config import WRITE_MODE_COMPENSATING
from ..extensions import db
from ..errors import CompensationFailure, InventoryError, StoreError
from ..models import PurchaseOrder, PurchaseOrderItem, ReconciliationEvent, Sale, SaleItem
from .concurrency import run_with_retry
from .scope_service import scoped_query
from .tenant_service import TenantContext


class PipelineState(str, Enum):
    VALIDATING = "VALIDATING"
    CHECKING = "CHECKING"
    WRITING_HEADER = "WRITING_HEADER"
    WRITING_CHILDREN = "WRITING_CHILDREN"
    COMPENSATING = "COMPENSATING"
    COMMITTED = "COMMITTED"
    FAILED = "FAILED"


_ALLOWED = {
    PipelineState.VALIDATING: {PipelineState.CHECKING, PipelineState.WRITING_HEADER, PipelineState.FAILED},
    PipelineState.CHECKING: {PipelineState.WRITING_HEADER, PipelineState.FAILED},
    PipelineState.WRITING_HEADER: {PipelineState.WRITING_CHILDREN, PipelineState.FAILED},
    PipelineState.WRITING_CHILDREN: {PipelineState.COMMITTED, PipelineState.COMPENSATING, PipelineState.FAILED},
    PipelineState.COMPENSATING: {PipelineState.FAILED},
    PipelineState.COMMITTED: set(),
    PipelineState.FAILED: set(),
}


def _delete_header(model, ctx: TenantContext, header_id: int) -> int:
    """Idempotent compensating delete: 0 rows affected is success."""
    deleted = scoped_query(model, ctx).filter(model.id == header_id).delete(synchronize_session=False)
    db.session.commit()
    return deleted


class _Stage:
    def __init__(self, pipeline: "WritePipeline", state: PipelineState):
        self.pipeline = pipeline
        self.state = state

    def __enter__(self):
        # A new pipeline already sits in VALIDATING
        if self.pipeline.state != self.state:
            self.pipeline.advance(self.state)
        return self.pipeline

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            db.session.rollback()
            self.pipeline.advance(PipelineState.FAILED)
        return False


class WritePipeline:
    def __init__(self, header_model, ctx: TenantContext, label: str):
        self.header_model = header_model
        self.ctx = ctx
        self.label = label
        self.mode = current_app.config.get("INVENTORY_WRITE_MODE")
        self.state = PipelineState.VALIDATING
        self.history: list[PipelineState] = [PipelineState.VALIDATING]

    @property
    def compensating(self) -> bool:
        return self.mode == WRITE_MODE_COMPENSATING

    def advance(self, state: PipelineState) -> None:
        if state not in _ALLOWED[self.state]:
            raise RuntimeError(f"Illegal pipeline transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def stage(self, state: PipelineState) -> _Stage:
        """Run a pre-write stage; any exception inside moves the pipeline to FAILED."""
        return _Stage(self, state)

    def fail(self) -> None:
        db.session.rollback()
        self.advance(PipelineState.FAILED)

    def run(self, build_header: Callable[[], object], write_children: Callable[[object], None]):
        """
        Write the header, then the children, honouring the configured write mode.

        build_header returns an unsaved header row. write_children receives the
        flushed header and adds item rows / applies stock effects without
        committing.
        """
        self.advance(PipelineState.WRITING_HEADER)
        try:
            header = build_header()
            db.session.add(header)
            db.session.flush()
            header_id = header.id
            if self.compensating:
                db.session.commit()
        except SQLAlchemyError as exc:
            current_app.logger.exception("Failed to write %s header", self.label)
            self.fail()
            raise StoreError(f"Database error: Could not create {self.label} record.") from exc
        except InventoryError:
            self.fail()
            raise

        self.advance(PipelineState.WRITING_CHILDREN)
        try:
            write_children(header)
            db.session.commit()
        except (SQLAlchemyError, InventoryError) as exc:
            db.session.rollback()
            if isinstance(exc, InventoryError):
                error = exc
            else:
                current_app.logger.exception("Failed to write %s items (header id=%s)", self.label, header_id)
                error = StoreError(f"Database error: Could not create {self.label} items.")
                error.__cause__ = exc

            if self.compensating:
                self._compensate(header_id, error)
            self.advance(PipelineState.FAILED)
            raise error

        self.advance(PipelineState.COMMITTED)
        return header

    def _compensate(self, header_id: int, error: InventoryError) -> None:
        self.advance(PipelineState.COMPENSATING)
        try:
            run_with_retry(
                lambda: _delete_header(self.header_model, self.ctx, header_id),
                label=f"Compensating delete of {self.label} {header_id}",
            )
            current_app.logger.info("Compensated %s %s after failed item write", self.label, header_id)
        except SQLAlchemyError as exc:
            db.session.rollback()
            error.compensation_failed = True
            record_compensation_failure(
                CompensationFailure(self.header_model.__tablename__, header_id, exc),
                self.ctx,
            )


@contextmanager
def unit_of_work(what: str):
    """
    One transaction for single-step mutations (updates, deletes, movements).

    Commits on success. Rolls back on any failure; store failures surface as
    StoreError("Database error: Could not <what>.").
    """
    try:
        yield
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Write failed: %s", what)
        raise StoreError(f"Database error: Could not {what}.") from exc
    except InventoryError:
        db.session.rollback()
        raise


def find_orphan_headers(ctx: TenantContext) -> dict[str, list[int]]:
    """
    Sale and purchase order headers in scope that have no items.

    Only a failed compensation (or a manual delete of every item of a
    purchase order) produces these.
    """
    orphans = {}
    for header, child, fk in (
        (Sale, SaleItem, SaleItem.sale_id),
        (PurchaseOrder, PurchaseOrderItem, PurchaseOrderItem.purchase_order_id),
    ):
        has_items = db.session.query(child.id).filter(fk == header.id).exists()
        rows = (
            scoped_query(header, ctx)
            .filter(~has_items)
            .with_entities(header.id)
            .order_by(header.id)
            .all()
        )
        orphans[header.__tablename__] = [row.id for row in rows]
    return orphans


def record_compensation_failure(failure: CompensationFailure, ctx: TenantContext) -> None:
    """
    Log and persist an orphaned header for out-of-band reconciliation.

    Kept separate from ordinary database-error logging: this row needs an
    operator.
    """
    current_app.logger.critical(
        "COMPENSATION_FAILED entity=%s id=%s organization=%s branch=%s user=%s: %s",
        failure.entity_type, failure.entity_id,
        ctx.organization_id, ctx.branch_id, ctx.user_id, failure.cause,
    )
    try:
        db.session.add(ReconciliationEvent(
            event_type="COMPENSATION_FAILED",
            entity_type=failure.entity_type,
            entity_id=failure.entity_id,
            organization_id=ctx.organization_id,
            branch_id=ctx.branch_id,
            user_id=ctx.user_id,
            reason=str(failure.cause),
        ))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(
            "Could not persist reconciliation event for %s %s",
            failure.entity_type, failure.entity_id,
        )
