# Overview: Service-layer operations for workshop tasks.

"""
Workshop task tracking.

TASK LIFECYCLE: PENDING -> IN_PROGRESS -> COMPLETED, forward only.

Sale propagation touches Sale.workshop_status only, never Sale.status:
- first task started: PENDING -> IN_PROGRESS
- last task completed: -> COMPLETED
"""

from __future__ import annotations

from ..errors import BadRequestError, ForbiddenError, NotFoundError
from ..extensions import db
from ..models import Sale, User, WorkshopTask
from ..permissions import Role
from furnipos.time_utils import utcnow
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .notification_service import notify, ROOM_BOSS, ROOM_SERVICE, ROOM_WORKSHOP
from .sales_service import WORKSHOP_PENDING, WORKSHOP_IN_PROGRESS, WORKSHOP_COMPLETED


TASK_STATUSES = (WORKSHOP_PENDING, WORKSHOP_IN_PROGRESS, WORKSHOP_COMPLETED)
_ORDER = {status: index for index, status in enumerate(TASK_STATUSES)}


class WorkshopError(BadRequestError):
    pass


def list_tasks(actor, status: str | None = None) -> list[dict]:
    """Masters see only tasks assigned to them."""
    query = db.session.query(WorkshopTask)
    if status:
        if status not in TASK_STATUSES:
            raise WorkshopError(f"Unknown status: {status}")
        query = query.filter(WorkshopTask.status == status)
    if actor.role == Role.MASTER:
        query = query.filter(WorkshopTask.assigned_to_id == actor.id)

    tasks = query.order_by(WorkshopTask.id.desc()).all()
    result = []
    for task in tasks:
        data = task.to_dict()
        data["assigned_to"] = task.assigned_to.to_public_dict() if task.assigned_to else None
        data["sale"] = {
            "id": task.sale.id,
            "document_number": task.sale.document_number,
            "customer": task.sale.customer.to_dict() if task.sale.customer else None,
            "lines": [line.to_dict() for line in task.sale.lines],
        }
        result.append(data)
    return result


def update_status(actor, task_id: int, status: str, notes: str | None = None):
    """
    Move a task forward and propagate to its sale.

    Returns (task, notifications).
    """
    if status not in TASK_STATUSES:
        raise WorkshopError(f"Unknown status: {status}")

    def _op():
        begin_immediate()
        task = lock_for_update(db.session.query(WorkshopTask).filter_by(id=task_id)).first()
        if not task:
            raise NotFoundError("Workshop task not found")
        if actor.role == Role.MASTER and task.assigned_to_id not in (None, actor.id):
            raise ForbiddenError("Task is assigned to another master")
        if _ORDER[status] <= _ORDER[task.status]:
            raise WorkshopError(f"Cannot move task from {task.status} to {status}")

        now = utcnow()
        task.status = status
        if notes is not None:
            task.notes = notes
        if status == WORKSHOP_IN_PROGRESS:
            task.started_at = now
        if status == WORKSHOP_COMPLETED:
            task.started_at = task.started_at or now
            task.completed_at = now
        if task.assigned_to_id is None and actor.role == Role.MASTER:
            task.assigned_to_id = actor.id

        sale = db.session.get(Sale, task.sale_id)
        all_done = False
        if status == WORKSHOP_IN_PROGRESS and sale.workshop_status == WORKSHOP_PENDING:
            sale.workshop_status = WORKSHOP_IN_PROGRESS
        if status == WORKSHOP_COMPLETED:
            db.session.flush()
            remaining = (
                db.session.query(WorkshopTask)
                .filter(WorkshopTask.sale_id == sale.id, WorkshopTask.status != WORKSHOP_COMPLETED)
                .count()
            )
            if remaining == 0:
                sale.workshop_status = WORKSHOP_COMPLETED
                all_done = True

        db.session.commit()
        return task, all_done

    task, all_done = run_with_retry(_op)

    events = []
    if task.status == WORKSHOP_COMPLETED:
        if all_done:
            events.append(notify((ROOM_SERVICE, ROOM_BOSS), "workshop:allCompleted", {
                "sale_id": task.sale_id,
            }))
        events.append(notify((ROOM_SERVICE, ROOM_BOSS), "workshop:taskCompleted", {
            "task_id": task.id,
            "sale_id": task.sale_id,
            "master_id": actor.id,
        }))
    else:
        events.append(notify(ROOM_WORKSHOP, "workshop:taskUpdated", {
            "task_id": task.id,
            "status": task.status,
        }))
    return task, events


def assign_task(actor, task_id: int, assigned_to_id: int):
    """Owner assigns (or reassigns) a technician. Returns (task, notifications)."""
    def _op():
        begin_immediate()
        task = lock_for_update(db.session.query(WorkshopTask).filter_by(id=task_id)).first()
        if not task:
            raise NotFoundError("Workshop task not found")
        if task.status == WORKSHOP_COMPLETED:
            raise WorkshopError("Task already completed")
        master = db.session.get(User, assigned_to_id)
        if not master or not master.is_active:
            raise NotFoundError("User not found")
        if master.role != Role.MASTER:
            raise WorkshopError("Tasks can only be assigned to a master")
        task.assigned_to_id = master.id
        db.session.commit()
        return task

    task = run_with_retry(_op)
    return task, [notify(ROOM_WORKSHOP, "workshop:taskAssigned", {
        "task_id": task.id,
        "assigned_to_id": task.assigned_to_id,
    })]
