"""퀘스트 목록 검색/필터"""

from __future__ import annotations

from typing import Optional

from questboard.core.quest.models import QuestSummary


def matches_query(summary: QuestSummary, query: str) -> bool:
    """제목, 설명, 보상 배지 제목 중 하나라도 포함하면 True (대소문자 무시)."""
    needle = query.lower()
    quest = summary.quest
    haystacks = [quest.title, quest.description, summary.badge_title]
    return any(h is not None and needle in h.lower() for h in haystacks)


def filter_quests(
    summaries: list[QuestSummary],
    query: Optional[str] = None,
    user_id: Optional[str] = None,
    created_by_me: bool = False,
    in_progress: bool = False,
    completed: bool = False,
) -> list[QuestSummary]:
    """목록 필터. 조건은 AND로 결합되며 입력 순서를 유지한다."""
    result: list[QuestSummary] = []
    for summary in summaries:
        if query and not matches_query(summary, query):
            continue
        if created_by_me and summary.quest.created_by != user_id:
            continue

        progress = summary.progress
        if in_progress and (progress is None or progress.is_completed):
            continue
        if completed and (progress is None or not progress.is_completed):
            continue

        result.append(summary)
    return result
