"""EventBus - 서비스 간 이벤트 통신

규칙:
- 서비스는 다른 서비스를 직접 import하지 않는다
- 이벤트는 식별자(ID)만 전달한다
- 전파 깊이 최대 MAX_DEPTH 단계
- 하나의 전파 체인 안에서 동일 source의 동일 이벤트 중복 발행 금지
- 발행자가 결과에 의존하는 이벤트(배지 지급 등)는 raise_errors=True로 발행해
  핸들러 예외를 호출자에게 돌려준다
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Set

from questboard.core.logging import get_logger

logger = get_logger(__name__)

MAX_DEPTH = 5  # 한 요청 내 이벤트 전파 최대 깊이


@dataclass
class DomainEvent:
    """이벤트 데이터 컨테이너

    Args:
        event_type: 이벤트 유형 (예: "quest_completed", "badge_awarded")
        data: 이벤트 데이터 (ID 위주, 무거운 객체 금지)
        source: 발행한 서비스 이름
    """

    event_type: str
    data: Dict[str, Any]
    source: str

    _depth: int = field(default=0, repr=False)


EventHandler = Callable[[DomainEvent], None]


class EventBus:
    """동기식 이벤트 버스

    사용 패턴:
        bus = EventBus()
        bus.subscribe("task_completed", badge_service.on_task_completed)
        bus.emit(DomainEvent(event_type="task_completed", data={"task_id": "t1"}, source="task_service"))

    최상위 emit이 끝나면 중복 추적이 초기화되므로, 같은 이벤트를
    순차적으로 여러 번 발행하는 것은 허용된다.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._current_depth: int = 0
        self._emitted_in_chain: Set[str] = set()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """이벤트 구독 등록"""
        self._handlers[event_type].append(handler)
        logger.debug("EventBus 구독: %s → %s", event_type, handler.__qualname__)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        """이벤트 구독 해제"""
        try:
            self._handlers[event_type].remove(handler)
            logger.debug("EventBus 구독 해제: %s → %s", event_type, handler.__qualname__)
        except ValueError:
            logger.warning("핸들러 미등록: %s → %s", event_type, handler.__qualname__)

    def emit(self, event: DomainEvent, raise_errors: bool = False) -> None:
        """이벤트 발행. 등록된 핸들러를 동기 호출.

        안전장치:
        1. 전파 깊이 MAX_DEPTH 초과 시 무시
        2. 같은 체인에서 동일 source의 동일 event_type 재발행 시 무시
        3. 핸들러 예외는 로그를 남기고 다음 핸들러 계속 호출

        raise_errors=True면 모든 핸들러 호출이 끝난 뒤 첫 번째 핸들러 예외를
        다시 던진다.
        """
        if self._current_depth >= MAX_DEPTH:
            logger.warning(
                "EventBus 전파 깊이 초과 (%d): %s:%s 무시됨",
                MAX_DEPTH,
                event.source,
                event.event_type,
            )
            return

        chain_key = f"{event.source}:{event.event_type}"
        if chain_key in self._emitted_in_chain:
            logger.warning("EventBus 중복 이벤트 차단: %s", chain_key)
            return

        self._emitted_in_chain.add(chain_key)
        event._depth = self._current_depth

        handlers = list(self._handlers.get(event.event_type, []))
        if not handlers:
            logger.debug("EventBus: %s 구독자 없음", event.event_type)
        else:
            logger.info(
                "EventBus 전파: %s (source=%s, depth=%d, handlers=%d)",
                event.event_type,
                event.source,
                self._current_depth,
                len(handlers),
            )

        failures: List[Exception] = []
        self._current_depth += 1
        try:
            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.exception(
                        "EventBus 핸들러 에러: %s (event=%s)",
                        handler.__qualname__,
                        event.event_type,
                    )
                    failures.append(e)
        finally:
            self._current_depth -= 1
            if self._current_depth == 0:
                self._emitted_in_chain.clear()

        if raise_errors and failures:
            raise failures[0]

    def clear(self) -> None:
        """모든 구독 해제 (테스트용)"""
        self._handlers.clear()
        self._emitted_in_chain.clear()
        self._current_depth = 0

    @property
    def handler_count(self) -> int:
        """등록된 총 핸들러 수"""
        return sum(len(h) for h in self._handlers.values())
