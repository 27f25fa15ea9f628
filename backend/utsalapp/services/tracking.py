"""View event recording."""
import hashlib
import logging
from typing import Optional

from utsalapp.errors import NotFound
from utsalapp.schemas import ViewEvent
from utsalapp.storage import Storage

logger = logging.getLogger(__name__)


def hash_ip(ip: str) -> str:
    """Truncated one-way hash of a requester IP (16 hex chars)."""
    return hashlib.sha256(ip.encode()).hexdigest()[:16]


async def record_view(storage: Storage, post_id: str, ip_hash: Optional[str] = None) -> ViewEvent:
    """
    Append a view event for a post.

    Repeat views from the same caller are all recorded; abuse is bounded
    by the rate limit on the endpoint, not by deduplication.
    """
    post = await storage.get_sale_post(post_id)
    if post is None:
        raise NotFound("Sale post not found")

    event = await storage.create_view_event(post_id, ip_hash)
    logger.debug(f"Recorded view {event.id} for sale post {post_id}")
    return event


async def view_count(storage: Storage, post_id: str) -> int:
    return await storage.count_view_events(post_id)
