# backend/routes/tools.py
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from utils.tokenJWT import get_current_user
from utils.audit import write_log
from services.tools import TOOLS, call_tool
import schemas.tools as tool_schemas

router = APIRouter(prefix="/tools", tags=["Tools"])


@router.get("", response_model=List[tool_schemas.ToolDescription])
def list_tools(current_user: User = Depends(get_current_user)):
    return TOOLS


@router.post("/call", response_model=tool_schemas.ToolResult)
def call_tool_endpoint(
    payload: tool_schemas.ToolCall,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = call_tool(db, payload.name, payload.arguments)
    write_log(
        db, user_id=current_user.id, actor=current_user.email, action="TOOL_CALL", resource="tools",
        status="FAIL" if result["isError"] else "SUCCESS", request=request,
        meta={"tool": payload.name},
    )
    return result
