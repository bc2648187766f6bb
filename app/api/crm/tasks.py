from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.deps import get_current_user
from app.db.session import get_db
from app.models.task import Task
from app.schemas.crm import TaskCreate, TaskUpdate
from app.services.crm_records import as_utc, serialize_task

router = APIRouter()


def _task_or_404(db: Session, task_id: str) -> Task:
    try:
        key = uuid.UUID(str(task_id))
    except ValueError:
        raise HTTPException(status_code=404, detail="Task not found")
    row = db.get(Task, key)
    if row is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return row


@router.get("")
def list_tasks(
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    q = db.query(Task)
    if date_from is not None:
        q = q.filter(Task.date >= as_utc(date_from))
    if date_to is not None:
        q = q.filter(Task.date <= as_utc(date_to))
    rows = q.order_by(Task.date.asc()).all()
    return {"success": True, "data": [serialize_task(r) for r in rows]}


@router.post("", status_code=201)
def create_task(payload: TaskCreate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    title = str(payload.title or "").strip()
    if not title or payload.date is None:
        raise HTTPException(status_code=400, detail="Title and date required")
    row = Task(
        title=title,
        type=payload.type or "Other",
        date=as_utc(payload.date),
        description=payload.description or None,
        customer_cust_id=str(payload.customer_cust_id or "").strip() or None,
    )
    db.add(row); db.commit(); db.refresh(row)
    return {"success": True, "data": serialize_task(row), "message": "Task created"}


@router.put("/{task_id}")
def update_task(
    task_id: str,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    row = _task_or_404(db, task_id)
    updates = payload.model_dump(exclude_unset=True)
    if "title" in updates:
        title = str(updates["title"] or "").strip()
        if not title:
            raise HTTPException(status_code=400, detail="Title cannot be empty")
        row.title = title
    if "date" in updates:
        if updates["date"] is None:
            raise HTTPException(status_code=400, detail="Date cannot be empty")
        row.date = as_utc(updates["date"])
    if "type" in updates:
        row.type = updates["type"] or "Other"
    if "description" in updates:
        row.description = updates["description"] or None
    if "customer_cust_id" in updates:
        row.customer_cust_id = str(updates["customer_cust_id"] or "").strip() or None
    db.add(row); db.commit(); db.refresh(row)
    return {"success": True, "data": serialize_task(row), "message": "Task updated"}


@router.delete("/{task_id}")
def delete_task(task_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    row = _task_or_404(db, task_id)
    db.delete(row); db.commit()
    return {"success": True, "data": None, "message": "Task deleted"}
