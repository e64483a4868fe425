"""
Tests for the contact relationship service.

A pair of users shares one edge; its direction records who initiated the
current state.
"""

import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine

from collabhub.db.base import Base
from collabhub.db.session import build_session_factory
from collabhub.exceptions import ConflictError, InvalidInputError, NotFoundError
from collabhub.models.contact import Contact, ContactStatus, ordered_pair
from collabhub.models.user import User
from collabhub.services.contacts import ContactService, escape_like


async def count_edges(db, a, b) -> int:
    low, high = ordered_pair(a, b)
    result = await db.execute(
        select(func.count(Contact.id)).where(
            Contact.pair_low_id == low, Contact.pair_high_id == high
        )
    )
    return result.scalar_one()


# =============================================================================
# Helpers
# =============================================================================


class TestOrderedPair:
    def test_orders_ids(self):
        assert ordered_pair(7, 3) == (3, 7)
        assert ordered_pair(3, 7) == (3, 7)

    def test_edge_computes_pair(self):
        edge = Contact(user_id=9, contact_id=4, status=ContactStatus.PENDING)
        assert (edge.pair_low_id, edge.pair_high_id) == (4, 9)

    def test_set_direction_stays_in_pair(self):
        edge = Contact(user_id=1, contact_id=2, status=ContactStatus.PENDING)
        edge.set_direction(2, 1)
        assert (edge.user_id, edge.contact_id) == (2, 1)

        with pytest.raises(ValueError):
            edge.set_direction(1, 3)

    def test_other_party(self):
        first = User(id=1, login="first", name="First", password_hash="x")
        second = User(id=2, login="second", name="Second", password_hash="x")
        edge = Contact(user_id=1, contact_id=2, status=ContactStatus.PENDING)
        edge.user, edge.contact = first, second

        assert edge.other_party(1) is second
        assert edge.other_party(2) is first

    def test_escape_like(self):
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


# =============================================================================
# Sending requests
# =============================================================================


class TestSendRequest:
    @pytest.mark.asyncio
    async def test_creates_pending_edge(self, db, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)

        assert edge.status == ContactStatus.PENDING
        assert edge.user_id == alice.id
        assert edge.contact_id == bob.id
        assert edge.contact.login == "bob"
        assert await count_edges(db, alice.id, bob.id) == 1

    @pytest.mark.asyncio
    async def test_self_request_is_invalid(self, contact_service, alice):
        with pytest.raises(InvalidInputError):
            await contact_service.send_request(alice.id, alice.id)

    @pytest.mark.asyncio
    async def test_unknown_target(self, contact_service, alice):
        with pytest.raises(NotFoundError):
            await contact_service.send_request(alice.id, 9999)

    @pytest.mark.asyncio
    async def test_inactive_target(self, contact_service, make_user, alice):
        dave = await make_user("dave", is_active=False)
        with pytest.raises(NotFoundError):
            await contact_service.send_request(alice.id, dave.id)

    @pytest.mark.asyncio
    async def test_duplicate_request(self, contact_service, alice, bob):
        await contact_service.send_request(alice.id, bob.id)
        with pytest.raises(ConflictError) as exc_info:
            await contact_service.send_request(alice.id, bob.id)
        assert exc_info.value.message == "Contact request already sent"

    @pytest.mark.asyncio
    async def test_reverse_request_conflicts(self, db, contact_service, alice, bob):
        await contact_service.send_request(alice.id, bob.id)
        with pytest.raises(ConflictError) as exc_info:
            await contact_service.send_request(bob.id, alice.id)

        assert exc_info.value.message == "You have an incoming request from this user"
        assert await count_edges(db, alice.id, bob.id) == 1

    @pytest.mark.asyncio
    async def test_request_to_existing_contact(self, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)
        await contact_service.accept_request(bob.id, edge.id)

        with pytest.raises(ConflictError):
            await contact_service.send_request(bob.id, alice.id)

    @pytest.mark.asyncio
    async def test_concurrent_reverse_request_conflicts(self, tmp_path, settings):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'contacts.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = build_session_factory(engine)

        try:
            async with factory() as setup:
                first = User(login="first", name="First", password_hash="x")
                second = User(login="second", name="Second", password_hash="x")
                setup.add_all([first, second])
                await setup.commit()

            async with factory() as session_a, factory() as session_b:
                service_b = ContactService(session_b, settings)
                # Session B read the pair before session A committed its edge
                await service_b.find_edge(second.id, first.id)

                await ContactService(session_a, settings).send_request(first.id, second.id)
                await session_a.commit()

                async def stale_find_edge(user_a, user_b):
                    return None

                service_b.find_edge = stale_find_edge
                with pytest.raises(ConflictError):
                    await service_b.send_request(second.id, first.id)

            async with factory() as check:
                assert await count_edges(check, first.id, second.id) == 1
                total = await check.execute(select(func.count(Contact.id)))
                assert total.scalar_one() == 1
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_rejected_blocks_resend_by_default(self, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)
        await contact_service.reject_request(bob.id, edge.id)

        with pytest.raises(ConflictError):
            await contact_service.send_request(alice.id, bob.id)

    @pytest.mark.asyncio
    async def test_resend_after_reject_when_enabled(self, db, settings, alice, bob):
        service = ContactService(
            db, settings.model_copy(update={"contacts_allow_resend_after_reject": True})
        )
        edge = await service.send_request(alice.id, bob.id)
        await service.reject_request(bob.id, edge.id)

        resent = await service.send_request(bob.id, alice.id)

        assert resent.id == edge.id
        assert resent.status == ContactStatus.PENDING
        assert resent.user_id == bob.id
        assert resent.contact_id == alice.id
        assert await count_edges(db, alice.id, bob.id) == 1


# =============================================================================
# Answering requests
# =============================================================================


class TestAnswerRequest:
    @pytest.mark.asyncio
    async def test_accept(self, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)
        accepted = await contact_service.accept_request(bob.id, edge.id)

        assert accepted.status == ContactStatus.ACCEPTED
        assert accepted.user_id == alice.id

    @pytest.mark.asyncio
    async def test_initiator_cannot_accept(self, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)
        with pytest.raises(NotFoundError):
            await contact_service.accept_request(alice.id, edge.id)

    @pytest.mark.asyncio
    async def test_third_party_cannot_accept(self, contact_service, alice, bob, carol):
        edge = await contact_service.send_request(alice.id, bob.id)
        with pytest.raises(NotFoundError):
            await contact_service.accept_request(carol.id, edge.id)

    @pytest.mark.asyncio
    async def test_accept_twice(self, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)
        await contact_service.accept_request(bob.id, edge.id)
        with pytest.raises(NotFoundError):
            await contact_service.accept_request(bob.id, edge.id)

    @pytest.mark.asyncio
    async def test_reject(self, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)
        rejected = await contact_service.reject_request(bob.id, edge.id)
        assert rejected.status == ContactStatus.REJECTED

    @pytest.mark.asyncio
    async def test_cannot_reject_accepted(self, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)
        await contact_service.accept_request(bob.id, edge.id)
        with pytest.raises(NotFoundError):
            await contact_service.reject_request(bob.id, edge.id)


# =============================================================================
# Blocking
# =============================================================================


class TestBlocking:
    @pytest.mark.asyncio
    async def test_block_without_edge(self, db, contact_service, alice, bob):
        edge = await contact_service.block_user(alice.id, bob.id)

        assert edge.status == ContactStatus.BLOCKED
        assert edge.user_id == alice.id
        assert await count_edges(db, alice.id, bob.id) == 1

    @pytest.mark.asyncio
    async def test_block_rewrites_direction(self, db, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)

        blocked = await contact_service.block_user(bob.id, alice.id)

        assert blocked.id == edge.id
        assert blocked.status == ContactStatus.BLOCKED
        assert blocked.user_id == bob.id
        assert blocked.contact_id == alice.id
        assert blocked.contact.login == "alice"
        assert await count_edges(db, alice.id, bob.id) == 1

    @pytest.mark.asyncio
    async def test_block_accepted_contact(self, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)
        await contact_service.accept_request(bob.id, edge.id)

        blocked = await contact_service.block_user(alice.id, bob.id)
        assert blocked.status == ContactStatus.BLOCKED

    @pytest.mark.asyncio
    async def test_block_self(self, contact_service, alice):
        with pytest.raises(InvalidInputError):
            await contact_service.block_user(alice.id, alice.id)

    @pytest.mark.asyncio
    async def test_blocked_user_cannot_send_request(self, contact_service, alice, bob):
        await contact_service.block_user(alice.id, bob.id)
        with pytest.raises(ConflictError):
            await contact_service.send_request(bob.id, alice.id)

    @pytest.mark.asyncio
    async def test_only_blocker_can_unblock(self, db, contact_service, alice, bob):
        await contact_service.block_user(alice.id, bob.id)

        with pytest.raises(NotFoundError):
            await contact_service.unblock_user(bob.id, alice.id)

        await contact_service.unblock_user(alice.id, bob.id)
        assert await count_edges(db, alice.id, bob.id) == 0

    @pytest.mark.asyncio
    async def test_last_blocker_owns_block(self, contact_service, alice, bob):
        await contact_service.block_user(alice.id, bob.id)
        await contact_service.block_user(bob.id, alice.id)

        with pytest.raises(NotFoundError):
            await contact_service.unblock_user(alice.id, bob.id)
        await contact_service.unblock_user(bob.id, alice.id)

    @pytest.mark.asyncio
    async def test_unblock_without_block(self, contact_service, alice, bob):
        await contact_service.send_request(alice.id, bob.id)
        with pytest.raises(NotFoundError):
            await contact_service.unblock_user(alice.id, bob.id)


# =============================================================================
# Removal
# =============================================================================


class TestRemoveContact:
    @pytest.mark.asyncio
    async def test_either_endpoint_can_remove(self, db, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)
        await contact_service.remove_contact(bob.id, edge.id)
        assert await count_edges(db, alice.id, bob.id) == 0

    @pytest.mark.asyncio
    async def test_outsider_cannot_remove(self, contact_service, alice, bob, carol):
        edge = await contact_service.send_request(alice.id, bob.id)
        with pytest.raises(NotFoundError):
            await contact_service.remove_contact(carol.id, edge.id)

    @pytest.mark.asyncio
    async def test_request_allowed_after_removal(self, contact_service, alice, bob):
        edge = await contact_service.send_request(alice.id, bob.id)
        await contact_service.remove_contact(alice.id, edge.id)

        again = await contact_service.send_request(bob.id, alice.id)
        assert again.status == ContactStatus.PENDING
        assert again.user_id == bob.id


# =============================================================================
# Queries
# =============================================================================


class TestQueries:
    @pytest.mark.asyncio
    async def test_contacts_are_initiator_side(self, contact_service, alice, bob, carol):
        ab = await contact_service.send_request(alice.id, bob.id)
        await contact_service.accept_request(bob.id, ab.id)
        await contact_service.send_request(carol.id, alice.id)

        alice_contacts = await contact_service.get_contacts(alice.id)
        bob_contacts = await contact_service.get_contacts(bob.id)

        assert [e.id for e in alice_contacts] == [ab.id]
        assert bob_contacts == []

    @pytest.mark.asyncio
    async def test_contacts_status_filter(self, contact_service, alice, bob, carol):
        ab = await contact_service.send_request(alice.id, bob.id)
        await contact_service.accept_request(bob.id, ab.id)
        await contact_service.send_request(alice.id, carol.id)

        accepted = await contact_service.get_contacts(alice.id, ContactStatus.ACCEPTED)
        pending = await contact_service.get_contacts(alice.id, ContactStatus.PENDING)

        assert [e.contact_id for e in accepted] == [bob.id]
        assert [e.contact_id for e in pending] == [carol.id]

    @pytest.mark.asyncio
    async def test_incoming_and_outgoing(self, contact_service, alice, bob, carol):
        await contact_service.send_request(alice.id, bob.id)
        await contact_service.send_request(carol.id, bob.id)

        incoming = await contact_service.get_incoming_requests(bob.id)
        outgoing = await contact_service.get_outgoing_requests(alice.id)

        assert {e.user_id for e in incoming} == {alice.id, carol.id}
        assert [e.contact_id for e in outgoing] == [bob.id]
        assert await contact_service.get_incoming_requests(alice.id) == []

    @pytest.mark.asyncio
    async def test_status_is_pairwise_and_stable(self, contact_service, alice, bob, carol):
        edge = await contact_service.send_request(alice.id, bob.id)

        first = await contact_service.get_contact_status(bob.id, alice.id)
        second = await contact_service.get_contact_status(bob.id, alice.id)
        from_alice = await contact_service.get_contact_status(alice.id, bob.id)

        assert first.id == second.id == from_alice.id == edge.id
        assert first.status == second.status == ContactStatus.PENDING
        assert await contact_service.get_contact_status(alice.id, carol.id) is None


class TestSearchUsers:
    @pytest.mark.asyncio
    async def test_short_query(self, contact_service, alice):
        with pytest.raises(InvalidInputError):
            await contact_service.search_users(alice.id, " a ")

    @pytest.mark.asyncio
    async def test_matches_name_and_login(self, contact_service, make_user, alice):
        await make_user("bobby", name="Robert")
        await make_user("rob_smith", name="Smith")

        by_name = await contact_service.search_users(alice.id, "robe")
        by_login = await contact_service.search_users(alice.id, "ROB")

        assert [u.login for u in by_name] == ["bobby"]
        assert {u.login for u in by_login} == {"bobby", "rob_smith"}

    @pytest.mark.asyncio
    async def test_excludes_self_and_initiated(self, contact_service, make_user, alice):
        alex = await make_user("alex")
        alan = await make_user("alan")
        await contact_service.send_request(alice.id, alex.id)
        await contact_service.send_request(alan.id, alice.id)

        results = await contact_service.search_users(alice.id, "al")

        # Incoming requests do not hide their sender
        assert [u.login for u in results] == ["alan"]

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self, contact_service, make_user, alice):
        await make_user("bob_1")
        await make_user("bobx1")

        results = await contact_service.search_users(alice.id, "b_1")
        assert [u.login for u in results] == ["bob_1"]

    @pytest.mark.asyncio
    async def test_result_limit(self, contact_service, make_user, alice):
        for i in range(12):
            await make_user(f"member{i:02d}")

        results = await contact_service.search_users(alice.id, "member")
        assert len(results) == 10


class TestContactConstraints:
    @pytest.mark.asyncio
    async def test_unknown_status_rejected_by_storage(self, db, alice, bob):
        with pytest.raises(IntegrityError):
            await db.execute(
                text(
                    "INSERT INTO contacts (user_id, contact_id, pair_low_id, pair_high_id, "
                    "status, created_at, updated_at) VALUES (:a, :b, :a, :b, 'friends', "
                    "CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)"
                ),
                {"a": alice.id, "b": bob.id},
            )
