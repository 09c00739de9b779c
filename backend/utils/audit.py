from typing import Any, Callable, Optional

from fastapi import Request
from sqlalchemy.orm import Session
from models.log import Log
from services.errors import InventoryError


def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None or request.client is None:
        return None
    return request.client.host


# Request-level audit entry (who did what to which resource, and whether it worked)
def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", actor=None, request=None, ip=None, meta=None):
    entry = Log(
        user_id=user_id, actor=actor, action=action, resource=resource,
        status=status, ip=ip or client_ip(request), meta=meta or {},
    )
    db.add(entry)
    db.commit()


def audited(
    db: Session,
    *,
    user,
    action: str,
    resource: str,
    request: Optional[Request],
    meta: dict,
    run: Callable[[], Any],
    result_meta: Optional[Callable[[Any], dict]] = None,
):
    """Runs a service call and records SUCCESS, or FAIL with the error code, in the audit log."""
    try:
        result = run()
    except InventoryError as exc:
        write_log(
            db, user_id=user.id, actor=user.email, action=action, resource=resource,
            status="FAIL", request=request, meta={**meta, "error": exc.code, "message": exc.message},
        )
        raise
    extra = result_meta(result) if result_meta else {}
    write_log(
        db, user_id=user.id, actor=user.email, action=action, resource=resource,
        status="SUCCESS", request=request, meta={**meta, **extra},
    )
    return result
