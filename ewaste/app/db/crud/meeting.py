"""Meeting request CRUD operations."""
from typing import Any, List, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ewaste.app.db.models import MeetingRequest, MeetingStatus


async def create_meeting_request(
    session: AsyncSession,
    item_id: int,
    item_title: str,
    owner_id: str,
    requester_id: str,
    requester_email: str,
    meeting_point: Mapping[str, Any],
    auto_commit: bool = True,
) -> MeetingRequest:
    """Record a request to meet the owner of a listing. Starts as pending."""
    request = MeetingRequest(
        item_id=item_id,
        item_title=item_title,
        owner_id=owner_id,
        requester_id=requester_id,
        requester_email=requester_email,
        meeting_point=dict(meeting_point),
        status=MeetingStatus.PENDING.value,
    )
    session.add(request)
    if auto_commit:
        await session.commit()
        await session.refresh(request)
    else:
        await session.flush()
    return request


async def list_meeting_requests(
    session: AsyncSession,
    owner_id: str,
) -> List[MeetingRequest]:
    """Meeting requests addressed to an owner, newest first."""
    result = await session.execute(
        select(MeetingRequest)
        .where(MeetingRequest.owner_id == owner_id)
        .order_by(MeetingRequest.created_at.desc(), MeetingRequest.id.desc())
    )
    return list(result.scalars().all())
