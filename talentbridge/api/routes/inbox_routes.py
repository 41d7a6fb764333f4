"""
Inbox Routes

Student side:
GET   /inbox/student/threads - My conversations (tab, q)
GET   /inbox/student/threads/{thread_id}/messages - Messages, oldest first
POST  /inbox/student/threads/{thread_id}/messages - Reply

Organization side, {portal} is employer or university, ?org_id= required:
GET   /inbox/{portal}/threads - Conversations (tab: all|unread|starred|archived, q)
GET   /inbox/{portal}/threads/{thread_id}/messages - Messages, oldest first
POST  /inbox/{portal}/threads/{thread_id}/messages - Send message
PATCH /inbox/{portal}/threads/{thread_id} - Star, archive, mark read
POST  /inbox/{portal}/find-or-create - Thread with a student
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Response

from talentbridge.db.postgres import fetch_one
from talentbridge.core.auth import (
    get_current_user, get_current_applicant, require_org_member, require_org_type
)
from talentbridge.services import inbox_service
from talentbridge.schemas.schemas import (
    Portal, InboxTab, ConversationListResponse, MessageListResponse, InboxMessage,
    MessageCreate, FindOrCreateThread, ThreadIdResponse, ThreadFlagsUpdate, MessageResponse
)

router = APIRouter(prefix="/inbox", tags=["Inbox"])

PORTAL_ORG_TYPES = {"employer": "company", "university": "university"}


def require_portal_member(portal: Portal, org_id: Optional[int], user: dict) -> dict:
    if org_id is None:
        raise HTTPException(status_code=400, detail="org_id is required")
    return require_org_type(require_org_member(org_id, user), PORTAL_ORG_TYPES[portal.value])


# ============================================================
# STUDENT
# ============================================================

@router.get("/student/threads", response_model=ConversationListResponse)
async def student_threads(
    tab: InboxTab = Query(InboxTab.all),
    q: str = Query(""),
    user: dict = Depends(get_current_applicant)
):
    conversations = inbox_service.list_student_threads(user["user_id"], tab.value, q.strip())
    return ConversationListResponse(conversations=conversations)


@router.get("/student/threads/{thread_id}/messages", response_model=MessageListResponse)
async def student_messages(thread_id: int, user: dict = Depends(get_current_applicant)):
    inbox_service.get_student_thread(thread_id, user["user_id"])
    messages = inbox_service.list_messages(thread_id, inbox_service.CANDIDATE_LABEL)
    return MessageListResponse(messages=messages)


@router.post("/student/threads/{thread_id}/messages", response_model=InboxMessage, status_code=201)
async def student_reply(thread_id: int, message: MessageCreate, user: dict = Depends(get_current_applicant)):
    """Student replies count as unread for the organization."""
    body = message.text.strip()
    if not body:
        raise HTTPException(status_code=400, detail="Message text is required")
    thread = inbox_service.get_student_thread(thread_id, user["user_id"])
    return inbox_service.post_message(
        thread, body, inbox_service.CANDIDATE_LABEL, user["user_id"], user.get("name")
    )


# ============================================================
# EMPLOYER / UNIVERSITY
# ============================================================

@router.get("/{portal}/threads", response_model=ConversationListResponse)
async def org_threads(
    portal: Portal,
    org_id: int = Query(...),
    tab: InboxTab = Query(InboxTab.all),
    q: str = Query(""),
    user: dict = Depends(get_current_user)
):
    require_portal_member(portal, org_id, user)
    conversations = inbox_service.list_org_threads(org_id, portal.value, tab.value, q.strip())
    return ConversationListResponse(conversations=conversations)


@router.get("/{portal}/threads/{thread_id}/messages", response_model=MessageListResponse)
async def org_messages(portal: Portal, thread_id: int, org_id: int = Query(...),
                       user: dict = Depends(get_current_user)):
    require_portal_member(portal, org_id, user)
    inbox_service.get_org_thread(thread_id, org_id, portal.value)
    return MessageListResponse(messages=inbox_service.list_messages(thread_id, portal.value))


@router.post("/{portal}/threads/{thread_id}/messages", response_model=InboxMessage, status_code=201)
async def org_send(portal: Portal, thread_id: int, message: MessageCreate, user: dict = Depends(get_current_user)):
    """Organization replies mark the thread read."""
    body = message.text.strip()
    if not body:
        raise HTTPException(status_code=400, detail="Message text is required")
    require_portal_member(portal, message.org_id, user)
    thread = inbox_service.get_org_thread(thread_id, message.org_id, portal.value)
    return inbox_service.post_message(thread, body, portal.value, user["user_id"], user.get("name"))


@router.patch("/{portal}/threads/{thread_id}", response_model=MessageResponse)
async def update_thread(portal: Portal, thread_id: int, flags: ThreadFlagsUpdate,
                        user: dict = Depends(get_current_user)):
    require_portal_member(portal, flags.org_id, user)
    inbox_service.get_org_thread(thread_id, flags.org_id, portal.value)
    inbox_service.update_flags(thread_id, flags.starred, flags.archived, flags.mark_read)
    return MessageResponse(message="Thread updated")


@router.post("/{portal}/find-or-create", response_model=ThreadIdResponse)
async def find_or_create(
    portal: Portal,
    request: FindOrCreateThread,
    response: Response,
    user: dict = Depends(get_current_user)
):
    """Existing thread with the student (200) or a new one (201)."""
    require_portal_member(portal, request.org_id, user)

    student = fetch_one("SELECT id, name FROM users WHERE id = :id", {"id": request.student_user_id})
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    result = inbox_service.find_or_create_thread(
        request.org_id, portal.value, student["id"], request.student_name or student["name"]
    )
    response.status_code = 201 if result["created"] else 200
    return ThreadIdResponse(**result)
