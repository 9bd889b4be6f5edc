"""
Member registration tests
"""
import pytest
from pydantic import ValidationError

from app.club.config import MEMBER_PROFILES, USERS
from app.club.errors import BackendUnavailable, MemberNotFound, ProfileNotFound
from app.club.models import ClubRole, MemberCreate, MembershipStatus


class TestMemberCreateModel:

    def test_valid(self):
        data = MemberCreate(display_name="Jordan", email="jordan@example.com")
        assert data.role == ClubRole.member

    def test_short_name_rejected(self):
        with pytest.raises(ValidationError):
            MemberCreate(display_name="J", email="jordan@example.com")

    def test_bad_email_rejected(self):
        with pytest.raises(ValidationError):
            MemberCreate(display_name="Jordan", email="not-an-email")


class TestRegisterMember:

    @pytest.mark.asyncio
    async def test_creates_user_and_empty_profile(self, member_service, store, admin_actor):
        member = await member_service.register_member(
            MemberCreate(display_name="Jordan Lee", email="jordan@example.com", phone="555-0100"),
            admin_actor,
        )

        assert member.display_name == "Jordan Lee"
        assert member.membership_status == MembershipStatus.inactive
        assert store.raw(USERS, member.id)["created_by"] == "admin-1"

        profile = await member_service.get_member_profile(member.id)
        assert profile.membership_status == MembershipStatus.inactive
        assert profile.days_used_this_week == 0
        assert profile.days_used_this_month == 0
        assert profile.current_attendance_id is None
        assert profile.payment_history == []

    @pytest.mark.asyncio
    async def test_uses_given_id(self, member_service):
        member = await member_service.register_member(
            MemberCreate(display_name="Jordan Lee", email="jordan@example.com"),
            member_id="auth-uid-1",
        )
        assert member.id == "auth-uid-1"

    @pytest.mark.asyncio
    async def test_profile_failure_surfaces(self, member_service, store):
        store.fail_next("create", MEMBER_PROFILES)

        with pytest.raises(BackendUnavailable):
            await member_service.register_member(
                MemberCreate(display_name="Jordan Lee", email="jordan@example.com"),
                member_id="auth-uid-2",
            )
        assert store.raw(USERS, "auth-uid-2") is not None
        assert store.raw(MEMBER_PROFILES, "auth-uid-2") is None

    @pytest.mark.asyncio
    async def test_new_member_cannot_check_in_until_paid(self, member_service, attendance_service, payment_service):
        from app.club.errors import MembershipInactive

        member = await member_service.register_member(
            MemberCreate(display_name="Jordan Lee", email="jordan@example.com")
        )
        with pytest.raises(MembershipInactive):
            await attendance_service.check_in(member.id)

        await payment_service.record_membership_payment(member.id, "two-days-weekly")
        record = await attendance_service.check_in(member.id)
        assert record.member_name == "Jordan Lee"


class TestMemberReads:

    @pytest.mark.asyncio
    async def test_missing(self, member_service):
        with pytest.raises(MemberNotFound):
            await member_service.get_member("nobody")
        with pytest.raises(ProfileNotFound):
            await member_service.get_member_profile("nobody")

    @pytest.mark.asyncio
    async def test_list_by_role(self, member_service, store, make_member):
        make_member("m-2", "Zed")
        make_member("m-1", "Amy")
        store.put(USERS, {"id": "c-1", "display_name": "Coach Kim", "role": "coach"})

        members = await member_service.list_members(ClubRole.member)
        assert [m.display_name for m in members] == ["Amy", "Zed"]
        assert len(await member_service.list_members()) == 3
