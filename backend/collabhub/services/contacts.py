"""Contact relationship service.

Owns the contact-request state machine between two users::

    (none) --send--> pending --accept--> accepted
                        |
                        +----reject--> rejected
    any status --block--> blocked --unblock (blocker only)--> (none)
    any status --remove (either endpoint)--> (none)

A pair of users shares a single edge. Its direction records who initiated the
current state, and every existence/status lookup goes through the normalized
pair so ``(a, b)`` and ``(b, a)`` resolve to the same row.
"""

from collections.abc import Sequence

import structlog
from sqlalchemy import and_, not_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from collabhub.config import Settings, get_settings
from collabhub.exceptions import ConflictError, InvalidInputError, NotFoundError
from collabhub.models.contact import Contact, ContactStatus, ordered_pair
from collabhub.models.user import User

logger = structlog.get_logger()


# Conflict messages for an existing edge, keyed by (status, actor_is_initiator)
EXISTING_EDGE_MESSAGES = {
    (ContactStatus.PENDING, True): "Contact request already sent",
    (ContactStatus.PENDING, False): "You have an incoming request from this user",
    (ContactStatus.ACCEPTED, True): "User is already in your contacts",
    (ContactStatus.ACCEPTED, False): "User is already in your contacts",
    (ContactStatus.BLOCKED, True): "User is blocked",
    (ContactStatus.BLOCKED, False): "User is blocked",
    (ContactStatus.REJECTED, True): "Contact request was rejected",
    (ContactStatus.REJECTED, False): "Contact request was rejected",
}


def validate_search_query(query: str | None, settings: Settings) -> str:
    """Strip a search query and enforce the minimum length."""
    query = (query or "").strip()
    if len(query) < settings.search_min_query_length:
        raise InvalidInputError(
            f"Search query must be at least {settings.search_min_query_length} characters",
            code="QUERY_TOO_SHORT",
        )
    return query


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the query is matched as a literal substring."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ContactService:
    """Service for sending, answering and querying contact requests."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    # =========================================================================
    # Lookups
    # =========================================================================

    async def _get_active_user(self, user_id: int) -> User:
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.is_active.is_(True))
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def find_edge(self, user_a: int, user_b: int) -> Contact | None:
        """Pairwise lookup: the edge between two users, whichever way it points."""
        low, high = ordered_pair(user_a, user_b)
        result = await self.db.execute(
            select(Contact)
            .where(Contact.pair_low_id == low, Contact.pair_high_id == high)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _flush_edge(self, edge: Contact) -> Contact:
        """Flush an edge, mapping a uniqueness race to a Conflict."""
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            logger.warning(
                "contact_edge_conflict",
                user_id=edge.user_id,
                contact_id=edge.contact_id,
            )
            raise ConflictError("A relationship between these users already exists") from exc
        # Endpoints may have changed direction; reload them
        await self.db.refresh(edge, attribute_names=["user", "contact"])
        return edge

    # =========================================================================
    # Mutations
    # =========================================================================

    async def send_request(self, user_id: int, target_id: int) -> Contact:
        """Send a contact request from ``user_id`` to ``target_id``."""
        if user_id == target_id:
            raise InvalidInputError("You cannot add yourself as a contact", code="SELF_REQUEST")

        await self._get_active_user(target_id)

        edge = await self.find_edge(user_id, target_id)
        if edge is not None:
            resend = (
                edge.status == ContactStatus.REJECTED
                and self.settings.contacts_allow_resend_after_reject
            )
            if not resend:
                raise ConflictError(
                    EXISTING_EDGE_MESSAGES[(edge.status, edge.user_id == user_id)],
                    code=f"CONTACT_{edge.status.value.upper()}",
                )
            edge.set_direction(user_id, target_id)
            edge.status = ContactStatus.PENDING
            logger.info("contact_request_resent", user_id=user_id, contact_id=target_id)
        else:
            edge = Contact(user_id=user_id, contact_id=target_id, status=ContactStatus.PENDING)
            self.db.add(edge)

        await self._flush_edge(edge)
        logger.info("contact_request_sent", edge_id=edge.id, user_id=user_id, contact_id=target_id)
        return edge

    async def _get_incoming_pending(self, user_id: int, edge_id: int) -> Contact:
        # Wrong recipient and missing edge are deliberately indistinguishable
        result = await self.db.execute(
            select(Contact).where(
                Contact.id == edge_id,
                Contact.contact_id == user_id,
                Contact.status == ContactStatus.PENDING,
            )
        )
        edge = result.scalar_one_or_none()
        if edge is None:
            raise NotFoundError("Request not found")
        return edge

    async def accept_request(self, user_id: int, edge_id: int) -> Contact:
        """Accept an incoming pending request."""
        edge = await self._get_incoming_pending(user_id, edge_id)
        edge.status = ContactStatus.ACCEPTED
        await self.db.flush()
        logger.info("contact_request_accepted", edge_id=edge.id, user_id=user_id)
        return edge

    async def reject_request(self, user_id: int, edge_id: int) -> Contact:
        """Reject an incoming pending request."""
        edge = await self._get_incoming_pending(user_id, edge_id)
        edge.status = ContactStatus.REJECTED
        await self.db.flush()
        logger.info("contact_request_rejected", edge_id=edge.id, user_id=user_id)
        return edge

    async def block_user(self, user_id: int, target_id: int) -> Contact:
        """Block a user, overwriting whatever relationship the pair had."""
        if user_id == target_id:
            raise InvalidInputError("You cannot block yourself", code="SELF_BLOCK")

        await self._get_active_user(target_id)

        edge = await self.find_edge(user_id, target_id)
        if edge is None:
            edge = Contact(user_id=user_id, contact_id=target_id, status=ContactStatus.BLOCKED)
            self.db.add(edge)
        else:
            # The blocker owns the block
            edge.set_direction(user_id, target_id)
            edge.status = ContactStatus.BLOCKED

        await self._flush_edge(edge)
        logger.info("user_blocked", edge_id=edge.id, user_id=user_id, contact_id=target_id)
        return edge

    async def unblock_user(self, user_id: int, target_id: int) -> None:
        """Lift a block placed by ``user_id``."""
        result = await self.db.execute(
            select(Contact).where(
                Contact.user_id == user_id,
                Contact.contact_id == target_id,
                Contact.status == ContactStatus.BLOCKED,
            )
        )
        edge = result.scalar_one_or_none()
        if edge is None:
            raise NotFoundError("User is not blocked")

        await self.db.delete(edge)
        await self.db.flush()
        logger.info("user_unblocked", user_id=user_id, contact_id=target_id)

    async def remove_contact(self, user_id: int, edge_id: int) -> None:
        """Delete an edge in any status, by either of its endpoints."""
        result = await self.db.execute(
            select(Contact).where(
                Contact.id == edge_id,
                or_(Contact.user_id == user_id, Contact.contact_id == user_id),
            )
        )
        edge = result.scalar_one_or_none()
        if edge is None:
            raise NotFoundError("Contact not found")

        await self.db.delete(edge)
        await self.db.flush()
        logger.info("contact_removed", edge_id=edge_id, user_id=user_id)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_contacts(
        self,
        user_id: int,
        status: ContactStatus | None = None,
    ) -> Sequence[Contact]:
        """Edges initiated by the user, most recently updated first."""
        query = select(Contact).where(Contact.user_id == user_id)
        if status is not None:
            query = query.where(Contact.status == status)
        result = await self.db.execute(
            query.order_by(Contact.updated_at.desc(), Contact.id.desc())
        )
        return result.scalars().all()

    async def get_incoming_requests(self, user_id: int) -> Sequence[Contact]:
        result = await self.db.execute(
            select(Contact)
            .where(Contact.contact_id == user_id, Contact.status == ContactStatus.PENDING)
            .order_by(Contact.created_at.desc(), Contact.id.desc())
        )
        return result.scalars().all()

    async def get_outgoing_requests(self, user_id: int) -> Sequence[Contact]:
        result = await self.db.execute(
            select(Contact)
            .where(Contact.user_id == user_id, Contact.status == ContactStatus.PENDING)
            .order_by(Contact.created_at.desc(), Contact.id.desc())
        )
        return result.scalars().all()

    async def get_contact_status(self, user_id: int, target_id: int) -> Contact | None:
        """The pair's edge regardless of direction, or None."""
        return await self.find_edge(user_id, target_id)

    async def search_users(self, user_id: int, query: str) -> Sequence[User]:
        """Find active users to send a request to.

        Excludes the caller and every user the caller has initiated an edge
        with. Incoming edges are not excluded.
        """
        query = validate_search_query(query, self.settings)
        pattern = f"%{escape_like(query)}%"

        initiated = select(Contact.contact_id).where(Contact.user_id == user_id)
        result = await self.db.execute(
            select(User)
            .where(
                and_(
                    User.id != user_id,
                    User.is_active.is_(True),
                    not_(User.id.in_(initiated)),
                    or_(
                        User.name.ilike(pattern, escape="\\"),
                        User.login.ilike(pattern, escape="\\"),
                    ),
                )
            )
            .order_by(User.name, User.id)
            .limit(self.settings.search_result_limit)
        )
        return result.scalars().all()
