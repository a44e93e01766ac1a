from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import require_principal
from app.core.principal import Principal
from app.db.session import get_db
from app.models.notification import Notification
from app.services.notification_service import list_unread, serialize_notification


router = APIRouter(tags=["notifications"])


@router.get("/notifications")
def get_unread_notifications(
    request: Request,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    data = [serialize_notification(r) for r in list_unread(db, user_id=principal.id)]
    return {"request_id": request.state.request_id, "data": data, "error": None}


class MarkReadPayload(BaseModel):
    is_read: bool = True


@router.patch("/notifications/{notification_id}/read")
def mark_notification_read(
    request: Request,
    notification_id: int,
    payload: MarkReadPayload,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    row = db.query(Notification).filter(Notification.id == int(notification_id)).first()
    if not row or int(row.user_id) != int(principal.id):
        raise HTTPException(status_code=404, detail="Notification not found")

    row.is_read = bool(payload.is_read)
    db.commit()
    db.refresh(row)

    data = {
        "id": int(row.id),
        "is_read": bool(row.is_read),
    }
    return {"request_id": request.state.request_id, "data": data, "error": None}
