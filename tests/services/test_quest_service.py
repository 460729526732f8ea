"""QuestService 통합 테스트 (SQL / 메모리 저장소 + EventBus)"""

from datetime import datetime, timezone

import pytest

from questboard.core.badge.models import BadgeAward
from questboard.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from questboard.core.event_bus import EventBus
from questboard.core.event_types import EventTypes
from questboard.core.quest.enums import QuestState
from questboard.services.badge_service import BadgeService
from questboard.services.quest_service import QuestService
from questboard.services.task_service import TaskService

OWNER = "owner"


@pytest.fixture()
def setup(repository):
    """저장소 + EventBus + 서비스 3종 + 이벤트 기록"""
    bus = EventBus()
    events: list[tuple[str, dict]] = []
    for event_type in (
        EventTypes.QUEST_CREATED,
        EventTypes.QUEST_UPDATED,
        EventTypes.QUEST_DELETED,
        EventTypes.QUEST_STARTED,
        EventTypes.QUEST_TASK_COMPLETED,
        EventTypes.QUEST_COMPLETED,
        EventTypes.BADGE_AWARDED,
    ):
        bus.subscribe(event_type, lambda e: events.append((e.event_type, e.data)))

    quests = QuestService(repository, bus, reset_mode="percentage")
    badges = BadgeService(repository, bus)
    tasks = TaskService(repository, bus)
    return quests, badges, tasks, repository, events


def _make_quest(setup, task_count=3, required=2, with_badge=True):
    quests, badges, tasks, _, _ = setup
    badge_id = badges.create_badge(OWNER, "Finisher").badge_id if with_badge else None
    task_ids = [tasks.create_task(OWNER, f"Task {i}").task_id for i in range(task_count)]
    quest = quests.create_quest(
        OWNER,
        "Onboarding",
        task_ids,
        required_tasks_count=required,
        badge_id=badge_id,
    )
    return quest, task_ids, badge_id


class TestCreateQuest:
    def test_create_links_tasks_in_order(self, setup):
        quests, _, _, repo, events = setup
        quest, task_ids, _ = _make_quest(setup)
        assert quest.quest_id.startswith("quest_")
        links = repo.get_quest_tasks(quest.quest_id)
        assert [qt.task_id for qt in links] == task_ids
        assert (EventTypes.QUEST_CREATED, {"quest_id": quest.quest_id}) in events

    def test_required_count_out_of_range(self, setup):
        quests, _, tasks, _, _ = setup
        task_id = tasks.create_task(OWNER, "Only").task_id
        with pytest.raises(ValidationError):
            quests.create_quest(OWNER, "Q", [task_id], required_tasks_count=2)

    def test_unknown_task(self, setup):
        quests, _, _, _, _ = setup
        with pytest.raises(NotFoundError, match="task_missing"):
            quests.create_quest(OWNER, "Q", ["task_missing"])

    def test_unknown_badge(self, setup):
        quests, _, tasks, _, _ = setup
        task_id = tasks.create_task(OWNER, "T").task_id
        with pytest.raises(NotFoundError, match="Badge"):
            quests.create_quest(OWNER, "Q", [task_id], badge_id="badge_missing")


class TestProgressFlow:
    def test_start_then_state(self, setup):
        quests, _, _, _, events = setup
        quest, _, _ = _make_quest(setup)
        assert quests.get_state("u1", quest.quest_id) == QuestState.NOT_STARTED

        progress = quests.start_quest("u1", quest.quest_id)
        assert progress.progress_percentage == 0
        assert progress.completed_tasks == []
        assert quests.get_state("u1", quest.quest_id) == QuestState.IN_PROGRESS
        assert any(t == EventTypes.QUEST_STARTED for t, _ in events)

    def test_second_start_conflict(self, setup):
        quests, _, _, _, _ = setup
        quest, _, _ = _make_quest(setup)
        quests.start_quest("u1", quest.quest_id)
        with pytest.raises(ConflictError, match="already started"):
            quests.start_quest("u1", quest.quest_id)

    def test_start_missing_quest(self, setup):
        quests, _, _, _, _ = setup
        with pytest.raises(NotFoundError):
            quests.start_quest("u1", "quest_missing")

    def test_complete_without_start(self, setup):
        quests, _, _, _, _ = setup
        quest, task_ids, _ = _make_quest(setup)
        with pytest.raises(NotFoundError, match="Start the quest"):
            quests.complete_quest_task("u1", quest.quest_id, task_ids[0])

    def test_threshold_completion_awards_badge_once(self, setup):
        quests, badges, _, repo, events = setup
        quest, (t1, t2, t3), badge_id = _make_quest(setup)
        quests.start_quest("u1", quest.quest_id)

        first = quests.complete_quest_task("u1", quest.quest_id, t1)
        assert first.progress.progress_percentage == 50
        assert first.award is None

        second = quests.complete_quest_task("u1", quest.quest_id, t2)
        assert second.progress.progress_percentage == 100
        assert second.newly_completed
        assert second.award is not None
        assert second.award.quest_id == quest.quest_id
        assert quests.get_state("u1", quest.quest_id) == QuestState.COMPLETED

        third = quests.complete_quest_task("u1", quest.quest_id, t3)
        assert not third.changed
        assert third.award is None

        earned = badges.list_user_badges("u1")
        assert [e.badge.badge_id for e in earned] == [badge_id]
        assert [t for t, _ in events].count(EventTypes.BADGE_AWARDED) == 1
        assert [t for t, _ in events].count(EventTypes.QUEST_COMPLETED) == 1
        assert repo.get_progress("u1", quest.quest_id).completed_tasks == [t1, t2]

    def test_repeat_completion_is_idempotent(self, setup):
        quests, _, _, repo, _ = setup
        quest, (t1, _, _), _ = _make_quest(setup, required=3)
        quests.start_quest("u1", quest.quest_id)
        quests.complete_quest_task("u1", quest.quest_id, t1)
        before = repo.get_progress("u1", quest.quest_id)

        again = quests.complete_quest_task("u1", quest.quest_id, t1)
        assert not again.changed
        after = repo.get_progress("u1", quest.quest_id)
        assert after.completed_tasks == [t1]
        assert after.version == before.version

    def test_task_not_in_quest(self, setup):
        quests, _, tasks, _, _ = setup
        quest, _, _ = _make_quest(setup)
        outsider = tasks.create_task(OWNER, "Elsewhere").task_id
        quests.start_quest("u1", quest.quest_id)
        with pytest.raises(ValidationError):
            quests.complete_quest_task("u1", quest.quest_id, outsider)

    def test_already_held_badge_not_awarded_again(self, setup):
        quests, _, _, repo, _ = setup
        quest, (t1, _, _), badge_id = _make_quest(setup, required=1)
        repo.award_badge(
            BadgeAward(user_id="u1", badge_id=badge_id, earned_at=datetime.now(timezone.utc))
        )
        quests.start_quest("u1", quest.quest_id)
        outcome = quests.complete_quest_task("u1", quest.quest_id, t1)
        assert outcome.newly_completed
        assert outcome.award is None
        assert len(repo.list_user_badges("u1")) == 1


class TestUpdateQuest:
    def test_edit_resets_every_progress(self, setup):
        quests, _, tasks, repo, events = setup
        quest, (t1, t2, _), badge_id = _make_quest(setup, required=3)
        for user in ("u1", "u2"):
            quests.start_quest(user, quest.quest_id)
            quests.complete_quest_task(user, quest.quest_id, t1)
        quests.complete_quest_task("u2", quest.quest_id, t2)

        new_ids = [tasks.create_task(OWNER, f"New {i}").task_id for i in range(2)]
        quests.update_quest(
            OWNER, quest.quest_id, "Onboarding v2", new_ids, 1, badge_id=badge_id
        )

        links = repo.get_quest_tasks(quest.quest_id)
        assert [qt.task_id for qt in links] == new_ids
        for user in ("u1", "u2"):
            assert repo.get_progress(user, quest.quest_id).progress_percentage == 0
        # completed 목록은 그대로
        assert repo.get_progress("u2", quest.quest_id).completed_tasks == [t1, t2]
        assert (
            EventTypes.QUEST_UPDATED,
            {"quest_id": quest.quest_id, "reset_count": 2},
        ) in events

    def test_recompute_mode(self, repository):
        bus = EventBus()
        quests = QuestService(repository, bus, reset_mode="recompute")
        tasks = TaskService(repository, bus)
        task_ids = [tasks.create_task(OWNER, f"T{i}").task_id for i in range(3)]
        quest = quests.create_quest(OWNER, "Q", task_ids, required_tasks_count=3)
        quests.start_quest("u1", quest.quest_id)
        quests.complete_quest_task("u1", quest.quest_id, task_ids[0])
        quests.complete_quest_task("u1", quest.quest_id, task_ids[1])

        quests.update_quest(OWNER, quest.quest_id, "Q", [task_ids[1], task_ids[2]], 2)

        progress = repository.get_progress("u1", quest.quest_id)
        assert progress.completed_tasks == [task_ids[1]]
        assert progress.progress_percentage == 50
        assert progress.completed_at is None

    def test_recompute_edit_completes_met_threshold(self, repository):
        """임계값이 내려가 남은 완료 태스크로 충족되면 수정과 함께 완료 + 배지"""
        bus = EventBus()
        events = []
        for event_type in (EventTypes.QUEST_COMPLETED, EventTypes.BADGE_AWARDED):
            bus.subscribe(event_type, lambda e: events.append((e.event_type, e.data)))
        quests = QuestService(repository, bus, reset_mode="recompute")
        badges = BadgeService(repository, bus)
        tasks = TaskService(repository, bus)
        badge_id = badges.create_badge(OWNER, "Finisher").badge_id
        task_ids = [tasks.create_task(OWNER, f"T{i}").task_id for i in range(3)]
        quest = quests.create_quest(
            OWNER, "Q", task_ids, required_tasks_count=3, badge_id=badge_id
        )
        quests.start_quest("u1", quest.quest_id)
        quests.complete_quest_task("u1", quest.quest_id, task_ids[0])

        quests.update_quest(
            OWNER, quest.quest_id, "Q", [task_ids[0]], 1, badge_id=badge_id
        )

        assert quests.get_state("u1", quest.quest_id) == QuestState.COMPLETED
        progress = repository.get_progress("u1", quest.quest_id)
        assert progress.progress_percentage == 100
        assert progress.completed_at is not None
        assert repository.has_badge("u1", badge_id)
        assert (
            EventTypes.QUEST_COMPLETED,
            {"quest_id": quest.quest_id, "user_id": "u1"},
        ) in events
        assert (
            EventTypes.BADGE_AWARDED,
            {"badge_id": badge_id, "user_id": "u1", "quest_id": quest.quest_id},
        ) in events

        again = quests.complete_quest_task("u1", quest.quest_id, task_ids[0])
        assert not again.changed

    def test_percentage_edit_recompletion_finishes(self, setup):
        quests, _, _, repo, _ = setup
        quest, (t1, t2, _), badge_id = _make_quest(setup, required=3)
        quests.start_quest("u1", quest.quest_id)
        quests.complete_quest_task("u1", quest.quest_id, t1)
        quests.complete_quest_task("u1", quest.quest_id, t2)

        quests.update_quest(OWNER, quest.quest_id, "Q", [t1], 1, badge_id=badge_id)
        assert quests.get_state("u1", quest.quest_id) == QuestState.IN_PROGRESS

        outcome = quests.complete_quest_task("u1", quest.quest_id, t1)
        assert outcome.newly_completed
        assert outcome.award is not None
        assert quests.get_state("u1", quest.quest_id) == QuestState.COMPLETED
        assert repo.has_badge("u1", badge_id)

    def test_completed_stays_completed(self, setup):
        quests, _, tasks, repo, _ = setup
        quest, (t1, t2, _), _ = _make_quest(setup, required=1)
        quests.start_quest("u1", quest.quest_id)
        quests.complete_quest_task("u1", quest.quest_id, t1)

        quests.update_quest(OWNER, quest.quest_id, "Q", [t2], 1)
        assert quests.get_state("u1", quest.quest_id) == QuestState.COMPLETED
        outcome = quests.complete_quest_task("u1", quest.quest_id, t2)
        assert not outcome.changed

    def test_only_owner_can_edit(self, setup):
        quests, _, _, _, _ = setup
        quest, task_ids, _ = _make_quest(setup)
        with pytest.raises(PermissionDeniedError):
            quests.update_quest("intruder", quest.quest_id, "Hacked", task_ids, 1)

    def test_invalid_edit_changes_nothing(self, setup):
        quests, _, _, repo, _ = setup
        quest, task_ids, _ = _make_quest(setup)
        with pytest.raises(ValidationError):
            quests.update_quest(OWNER, quest.quest_id, "Q", task_ids[:1], 2)
        assert repo.get_quest(quest.quest_id).title == "Onboarding"
        assert len(repo.get_quest_tasks(quest.quest_id)) == 3


class TestDeleteQuest:
    def test_owner_deletes(self, setup):
        quests, _, _, repo, _ = setup
        quest, task_ids, _ = _make_quest(setup)
        quests.start_quest("u1", quest.quest_id)
        quests.delete_quest(OWNER, quest.quest_id)
        assert repo.get_quest(quest.quest_id) is None
        assert repo.get_progress("u1", quest.quest_id) is None
        assert repo.get_task(task_ids[0]) is not None

    def test_non_owner_rejected(self, setup):
        quests, _, _, _, _ = setup
        quest, _, _ = _make_quest(setup)
        with pytest.raises(PermissionDeniedError):
            quests.delete_quest("intruder", quest.quest_id)


class TestListAndDetail:
    def test_list_with_filters(self, setup):
        quests, _, _, _, _ = setup
        quest, (t1, _, _), _ = _make_quest(setup)
        quests.start_quest("u1", quest.quest_id)

        summaries = quests.list_quests("u1")
        assert len(summaries) == 1
        assert summaries[0].task_count == 3
        assert summaries[0].badge_title == "Finisher"
        assert summaries[0].progress is not None

        assert quests.list_quests("u1", in_progress=True)
        assert quests.list_quests("u1", completed=True) == []
        assert quests.list_quests("u2", created_by_me=True) == []
        assert quests.list_quests("u1", query="finisher")
        assert quests.list_quests("u1", query="nothing") == []

    def test_detail(self, setup):
        quests, _, _, _, _ = setup
        quest, task_ids, badge_id = _make_quest(setup, required=1)
        quests.start_quest("u1", quest.quest_id)
        quests.complete_quest_task("u1", quest.quest_id, task_ids[0])

        detail = quests.get_quest_detail(quest.quest_id, "u1")
        assert [qt.task_id for qt in detail.tasks] == task_ids
        assert detail.badge.badge_id == badge_id
        assert detail.user_has_badge
        assert detail.progress.progress_percentage == 100

    def test_detail_missing(self, setup):
        quests, _, _, _, _ = setup
        with pytest.raises(NotFoundError):
            quests.get_quest_detail("quest_missing", "u1")
