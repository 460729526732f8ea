"""BadgeService 테스트: 배지 CRUD, 유저 배지 조회"""

from datetime import datetime, timedelta, timezone

import pytest

from questboard.core.badge.models import BadgeAward
from questboard.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from questboard.core.event_bus import EventBus
from questboard.services.badge_service import BadgeService


@pytest.fixture()
def setup(repository):
    bus = EventBus()
    service = BadgeService(repository, bus)
    return service, repository, bus


class TestBadgeCrud:
    def test_create_and_get(self, setup):
        service, _, _ = setup
        badge = service.create_badge("owner", "  Explorer ", description="Visit all")
        assert badge.badge_id.startswith("badge_")
        assert badge.title == "Explorer"
        assert service.get_badge(badge.badge_id).description == "Visit all"

    def test_blank_title_rejected(self, setup):
        service, _, _ = setup
        with pytest.raises(ValidationError):
            service.create_badge("owner", "   ")

    def test_list_sorted_by_title(self, setup):
        service, _, _ = setup
        service.create_badge("owner", "Zeta")
        service.create_badge("owner", "Alpha")
        assert [b.title for b in service.list_badges()] == ["Alpha", "Zeta"]

    def test_update_by_owner(self, setup):
        service, _, _ = setup
        badge = service.create_badge("owner", "Old")
        service.update_badge("owner", badge.badge_id, "New", image_url="https://x/b.png")
        updated = service.get_badge(badge.badge_id)
        assert updated.title == "New"
        assert updated.image_url == "https://x/b.png"

    def test_update_by_other_rejected(self, setup):
        service, _, _ = setup
        badge = service.create_badge("owner", "Mine")
        with pytest.raises(PermissionDeniedError):
            service.update_badge("intruder", badge.badge_id, "Theirs")

    def test_delete(self, setup):
        service, _, _ = setup
        badge = service.create_badge("owner", "Temp")
        service.delete_badge("owner", badge.badge_id)
        assert service.get_badge(badge.badge_id) is None

    def test_delete_missing(self, setup):
        service, _, _ = setup
        with pytest.raises(NotFoundError):
            service.delete_badge("owner", "badge_missing")


class TestUserBadges:
    def test_newest_first_with_badge_details(self, setup):
        service, repo, _ = setup
        first = service.create_badge("owner", "First")
        second = service.create_badge("owner", "Second")
        now = datetime.now(timezone.utc)
        repo.award_badge(BadgeAward(user_id="u1", badge_id=first.badge_id, earned_at=now))
        repo.award_badge(
            BadgeAward(
                user_id="u1", badge_id=second.badge_id, earned_at=now + timedelta(hours=1)
            )
        )

        earned = service.list_user_badges("u1")
        assert [e.badge.title for e in earned] == ["Second", "First"]
        assert service.list_user_badges("u2") == []

    def test_holders(self, setup):
        service, repo, _ = setup
        badge = service.create_badge("owner", "Shared")
        now = datetime.now(timezone.utc)
        for user in ("u1", "u2"):
            repo.award_badge(BadgeAward(user_id=user, badge_id=badge.badge_id, earned_at=now))
        assert {a.user_id for a in service.get_badge_holders(badge.badge_id)} == {"u1", "u2"}

    def test_holders_missing_badge(self, setup):
        service, _, _ = setup
        with pytest.raises(NotFoundError):
            service.get_badge_holders("badge_missing")
