"""AI tutor conversations and configurable agents."""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ai_service import ai_service
from auth import get_current_user
from database import (
    create_document,
    delete_document,
    get_document_by_id,
    get_documents,
    replace_document,
    serialize_document,
    to_object_id,
    update_document,
    update_documents,
)
from schemas import AgentConfiguration, AIAgent, AIConversation, ConversationMessage, MessageMetadata

logger = logging.getLogger(__name__)

CONVERSATIONS = "aiconversation"
AGENTS = "aiagent"
CONVERSATION_LIST_LIMIT = 50

router = APIRouter(prefix="/api/ai", tags=["ai"])


def can_access_agent(agent: Dict[str, Any], user_id: str) -> bool:
    if not agent.get("is_active", True) or agent.get("status") != "active":
        return False
    return bool(agent.get("is_public")) or agent.get("creator_id") == user_id


def update_summary(conversation: Dict[str, Any]) -> None:
    messages = conversation.get("messages", [])
    times = [m["metadata"]["response_time"] for m in messages if m.get("metadata", {}).get("response_time")]
    conversation["summary"] = {
        "total_messages": len(messages),
        "average_response_time": round(sum(times) / len(times)) if times else 0,
    }


def record_agent_usage(agent: Dict[str, Any], response_time: int) -> None:
    usage = agent.get("usage", {})
    total = usage.get("total_interactions", 0) + 1
    average = usage.get("average_response_time", 0)
    update_document(AGENTS, {"_id": agent["_id"]}, {
        "usage.total_interactions": total,
        "usage.average_response_time": round((average * (total - 1) + response_time) / total),
        "usage.last_used": datetime.utcnow(),
    })


# ----------------- Chat -----------------

class ChatReq(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)
    conversation_id: Optional[str] = None
    agent_id: Optional[str] = None


class ArchiveReq(BaseModel):
    days_old: int = Field(default=30, ge=0)


@router.post("/chat")
def chat(req: ChatReq, user: Dict[str, Any] = Depends(get_current_user)):
    conversation = None
    if req.conversation_id:
        conversation = get_document_by_id(CONVERSATIONS, req.conversation_id, {"user_id": user["id"]})
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")

    agent = None
    agent_id = req.agent_id or (conversation or {}).get("agent_id")
    if agent_id:
        agent = get_document_by_id(AGENTS, agent_id)
        if not agent or not can_access_agent(agent, user["id"]):
            raise HTTPException(status_code=404, detail="Agent not found")

    if conversation is None:
        new = AIConversation(user_id=user["id"], agent_id=agent_id, title=req.message[:50])
        conversation = get_document_by_id(CONVERSATIONS, create_document(CONVERSATIONS, new))

    conversation["messages"].append(ConversationMessage(role="user", content=req.message).model_dump())

    options: Dict[str, Any] = {}
    system_prompt = None
    provider = "auto"
    if agent:
        settings = agent["configuration"]
        system_prompt = settings.get("system_prompt")
        provider = settings.get("provider", "auto")
        options = {"temperature": settings.get("temperature", 0.7), "max_tokens": settings.get("max_tokens", 1000)}

    reply = ai_service.continue_conversation(conversation["messages"], system_prompt, provider, **options)
    metadata = MessageMetadata(provider=reply.source, model=reply.model, response_time=reply.response_time)
    conversation["messages"].append(
        ConversationMessage(role="assistant", content=reply.data, metadata=metadata).model_dump()
    )
    conversation["last_activity"] = datetime.utcnow()
    update_summary(conversation)
    replace_document(CONVERSATIONS, conversation)

    if agent:
        record_agent_usage(agent, reply.response_time or 0)

    return {
        "success": True,
        "message": reply.data,
        "conversation_id": str(conversation["_id"]),
        "provider": reply.source,
        "fallback": reply.fallback,
    }


@router.get("/conversations")
def list_conversations(user: Dict[str, Any] = Depends(get_current_user)):
    conversations = get_documents(
        CONVERSATIONS, {"user_id": user["id"]}, limit=CONVERSATION_LIST_LIMIT, sort=[("last_activity", -1)]
    )
    return {"success": True, "conversations": serialize_document(conversations)}


@router.get("/conversations/{conversation_id}")
def get_conversation(conversation_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    conversation = get_document_by_id(CONVERSATIONS, conversation_id, {"user_id": user["id"]})
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"success": True, "conversation": serialize_document(conversation)}


@router.delete("/conversations/{conversation_id}")
def delete_conversation(conversation_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    oid = to_object_id(conversation_id)
    if oid is None or not delete_document(CONVERSATIONS, {"_id": oid, "user_id": user["id"]}):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"success": True, "message": "Conversation deleted successfully"}


@router.post("/conversations/archive")
def archive_conversations(req: ArchiveReq, user: Dict[str, Any] = Depends(get_current_user)):
    cutoff = datetime.utcnow() - timedelta(days=req.days_old)
    archived = update_documents(
        CONVERSATIONS,
        {"user_id": user["id"], "status": "active", "last_activity": {"$lt": cutoff}},
        {"status": "archived"},
    )
    logger.info("Archived %s conversations for %s", archived, user["id"])
    return {"success": True, "archived": archived}


# ----------------- Agents -----------------

class AgentReq(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: Literal["tutor", "quiz_generator", "study_planner", "content_analyzer", "progress_tracker"] = "tutor"
    description: Optional[str] = Field(default=None, max_length=500)
    capabilities: List[str] = Field(default_factory=list)
    configuration: AgentConfiguration
    is_public: bool = True


class AgentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    capabilities: Optional[List[str]] = None
    configuration: Optional[AgentConfiguration] = None
    is_public: Optional[bool] = None
    status: Optional[Literal["active", "inactive", "maintenance", "deprecated"]] = None
    is_active: Optional[bool] = None


@router.post("/agents", status_code=201)
def create_agent(req: AgentReq, user: Dict[str, Any] = Depends(get_current_user)):
    agent = AIAgent(creator_id=user["id"], **req.model_dump())
    agent_id = create_document(AGENTS, agent)
    logger.info("AI agent created: %s", agent_id)
    return {
        "success": True,
        "message": "AI agent created successfully",
        "agent": serialize_document(get_document_by_id(AGENTS, agent_id)),
    }


@router.get("/agents")
def list_agents(user: Dict[str, Any] = Depends(get_current_user)):
    agents = get_documents(AGENTS, {"is_active": True}, sort=[("created_at", -1)])
    visible = [a for a in agents if can_access_agent(a, user["id"])]
    return {"success": True, "agents": serialize_document(visible)}


@router.put("/agents/{agent_id}")
def update_agent(agent_id: str, req: AgentUpdate, user: Dict[str, Any] = Depends(get_current_user)):
    updates = req.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No agent fields to update")
    oid = to_object_id(agent_id)
    agent = update_document(AGENTS, {"_id": oid, "creator_id": user["id"]}, updates) if oid else None
    if not agent:
        raise HTTPException(status_code=404, detail="Agent not found")
    return {"success": True, "message": "Agent updated successfully", "agent": serialize_document(agent)}


@router.get("/health")
def health(user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "services": ai_service.health_check()}
