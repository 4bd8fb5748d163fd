"""
Study groups: membership and a REST message board.

Stats on a group (member counts and message count) are derived from its
member and message lists and are rewritten whenever either list changes.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from auth import get_current_user
from database import (
    create_document,
    delete_document,
    get_document_by_id,
    get_documents,
    replace_document,
    serialize_document,
)
from schemas import GroupMember, GroupMessage, GroupSettings, StudyGroup

logger = logging.getLogger(__name__)

GROUPS = "studygroup"
GROUP_LIST_LIMIT = 50
MANAGER_ROLES = {"admin", "moderator"}

router = APIRouter(prefix="/api/study-groups", tags=["study-groups"])


def find_member(group: Dict[str, Any], user_id: str) -> Optional[Dict[str, Any]]:
    return next((m for m in group.get("members", []) if m["user_id"] == user_id), None)


def update_stats(group: Dict[str, Any]) -> Dict[str, Any]:
    members = group.get("members", [])
    group["stats"] = {
        "total_members": len(members),
        "active_members": sum(1 for m in members if m.get("is_active", True)),
        "total_messages": len(group.get("messages", [])),
    }
    return group


def _get_group(group_id: str) -> Dict[str, Any]:
    group = get_document_by_id(GROUPS, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Study group not found")
    return group


def _require_member(group: Dict[str, Any], user_id: str, detail: str) -> Dict[str, Any]:
    member = find_member(group, user_id)
    if member is None:
        raise HTTPException(status_code=403, detail=detail)
    return member


def public_group(group: Dict[str, Any]) -> Dict[str, Any]:
    data = serialize_document(group)
    data.pop("messages", None)
    return data


# ----------------- Groups -----------------

class GroupReq(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    subject: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=500)
    topics: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    settings: GroupSettings = Field(default_factory=GroupSettings)


class GroupSettingsUpdate(BaseModel):
    max_members: Optional[int] = Field(default=None, ge=2)
    is_private: Optional[bool] = None
    require_approval: Optional[bool] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    subject: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, max_length=500)
    topics: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    settings: Optional[GroupSettingsUpdate] = None
    status: Optional[Literal["active", "inactive", "archived"]] = None


class MessageReq(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    type: Literal["text", "link", "file"] = "text"


@router.post("", status_code=201)
def create_group(req: GroupReq, user: Dict[str, Any] = Depends(get_current_user)):
    name = (req.name or "").strip()
    subject = (req.subject or "").strip()
    if not name or not subject:
        raise HTTPException(status_code=400, detail="Name and subject are required")

    group = StudyGroup(
        name=name,
        subject=subject,
        description=req.description,
        topics=req.topics,
        tags=req.tags,
        creator_id=user["id"],
        members=[GroupMember(user_id=user["id"], role="admin")],
        settings=req.settings,
    )
    group_id = create_document(GROUPS, update_stats(group.model_dump()))
    logger.info("Study group created: %s by %s", group_id, user["id"])
    return {
        "success": True,
        "message": "Study group created successfully",
        "group": public_group(get_document_by_id(GROUPS, group_id)),
    }


@router.get("")
def list_groups(
    subject: Optional[str] = None,
    is_private: Optional[bool] = None,
    search: Optional[str] = None,
    user: Dict[str, Any] = Depends(get_current_user),
):
    clauses: List[Dict[str, Any]] = [{"status": "active"}]
    if subject:
        clauses.append({"subject": {"$regex": re.escape(subject), "$options": "i"}})
    clauses.append({"$or": [{"settings.is_private": False}, {"members.user_id": user["id"]}]})
    if is_private is not None:
        clauses.append({"settings.is_private": is_private})
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        clauses.append({"$or": [{"name": pattern}, {"description": pattern}, {"tags": pattern}]})

    groups = get_documents(GROUPS, {"$and": clauses}, sort=[("created_at", -1)], limit=GROUP_LIST_LIMIT)
    return {"success": True, "groups": [public_group(g) for g in groups]}


@router.get("/my-groups")
def my_groups(user: Dict[str, Any] = Depends(get_current_user)):
    groups = get_documents(GROUPS, {"members.user_id": user["id"]}, sort=[("updated_at", -1)])
    return {"success": True, "groups": [public_group(g) for g in groups]}


@router.get("/{group_id}")
def get_group(group_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    group = _get_group(group_id)
    if group["settings"].get("is_private") and find_member(group, user["id"]) is None:
        raise HTTPException(status_code=403, detail="This is a private group")
    return {"success": True, "group": public_group(group)}


@router.put("/{group_id}")
def update_group(group_id: str, req: GroupUpdate, user: Dict[str, Any] = Depends(get_current_user)):
    group = _get_group(group_id)
    member = find_member(group, user["id"])
    if group["creator_id"] != user["id"] and (member is None or member["role"] not in MANAGER_ROLES):
        raise HTTPException(status_code=403, detail="Only admins can update the group")

    updates = req.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No group fields to update")
    if "settings" in updates:
        # Settings left out of the request keep their stored values
        updates["settings"] = {**group.get("settings", {}), **updates["settings"]}
        if updates["settings"]["max_members"] < len(group["members"]):
            raise HTTPException(status_code=400, detail="max_members cannot be below the current member count")

    group.update(updates)
    group = replace_document(GROUPS, update_stats(group))
    return {"success": True, "message": "Study group updated successfully", "group": public_group(group)}


@router.delete("/{group_id}")
def delete_group(group_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    group = _get_group(group_id)
    if group["creator_id"] != user["id"]:
        raise HTTPException(status_code=403, detail="Only the creator can delete the group")
    delete_document(GROUPS, {"_id": group["_id"]})
    logger.info("Study group deleted: %s", group_id)
    return {"success": True, "message": "Study group deleted successfully"}


@router.post("/{group_id}/join")
def join_group(group_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    group = _get_group(group_id)
    if find_member(group, user["id"]) is not None:
        raise HTTPException(status_code=400, detail="Already a member of this group")
    if len(group["members"]) >= group["settings"]["max_members"]:
        raise HTTPException(status_code=400, detail="Study group is full")
    if group["settings"].get("is_private"):
        raise HTTPException(status_code=403, detail="This is a private group. You need an invitation to join.")

    group["members"].append(GroupMember(user_id=user["id"]).model_dump())
    group = replace_document(GROUPS, update_stats(group))
    return {"success": True, "message": "Successfully joined the study group", "group": public_group(group)}


@router.post("/{group_id}/leave")
def leave_group(group_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    group = _get_group(group_id)
    if find_member(group, user["id"]) is None:
        raise HTTPException(status_code=400, detail="You are not a member of this group")
    if group["creator_id"] == user["id"]:
        raise HTTPException(
            status_code=400, detail="Group creator cannot leave. Transfer ownership or delete the group."
        )

    group["members"] = [m for m in group["members"] if m["user_id"] != user["id"]]
    replace_document(GROUPS, update_stats(group))
    return {"success": True, "message": "Successfully left the study group"}


# ----------------- Messages -----------------

@router.post("/{group_id}/messages", status_code=201)
def post_message(group_id: str, req: MessageReq, user: Dict[str, Any] = Depends(get_current_user)):
    group = _get_group(group_id)
    _require_member(group, user["id"], "You must be a member to post messages")

    message = GroupMessage(user_id=user["id"], content=req.content, type=req.type).model_dump()
    group["messages"].append(message)
    replace_document(GROUPS, update_stats(group))
    return {"success": True, "message": message}


@router.get("/{group_id}/messages")
def list_messages(
    group_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    before: Optional[datetime] = None,
    user: Dict[str, Any] = Depends(get_current_user),
):
    group = _get_group(group_id)
    _require_member(group, user["id"], "You must be a member to view messages")

    messages = group.get("messages", [])
    if before is not None:
        if before.tzinfo is not None:
            before = before.astimezone(timezone.utc).replace(tzinfo=None)
        messages = [m for m in messages if m["created_at"] < before]
    return {"success": True, "messages": messages[-limit:]}
