"""
Ledger: Хост-среда исполнения протокола

Ledger моделирует цепочку, на которой живут рынки:
- высота блока (height), продвигается только вперёд
- реестр участников (markets, risk engine, tokens, oracle) по адресу
- append-only audit log
- атомарные вызовы: любая ошибка откатывает ВСЁ состояние всех участников

АТОМАРНОСТЬ:
Внешний (outermost) вызов atomic() снимает snapshot состояния каждого
зарегистрированного участника и длины audit log. Исключение внутри →
восстановление snapshot-ов и усечение log, затем исключение пробрасывается
дальше. Вложенные вызовы присоединяются к внешнему.

СТЕК ВЫЗОВОВ:
Декораторы atomic и non_reentrant кладут на стек кадр (участник, метод) на
время исполнения. По стеку Risk Engine определяет, кто на самом деле его
вызвал, вместо того чтобы верить аргументу.

Исполнение строго последовательное (single-threaded).
"""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Iterator, List, NamedTuple, Optional, Tuple, TypeVar

from src.core.contracts.validators import AuditRecordValidator
from src.core.domain.audit import AuditRecord
from src.core.errors import ErrorCode, InvariantViolation, ProtocolError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


# =============================================================================
# PARTICIPANT
# =============================================================================


class LedgerParticipant:
    """
    Базовый класс для всех объектов с состоянием на ledger.

    Подкласс перечисляет:
    - _STATE_FIELDS: атрибуты-данные (копируются deepcopy при snapshot;
      зарегистрированные участники внутри данных не копируются, остаются ссылками)
    - _REF_FIELDS: атрибуты-ссылки на внешние объекты (копируется ссылка)
    """

    _STATE_FIELDS: Tuple[str, ...] = ()
    _REF_FIELDS: Tuple[str, ...] = ()

    def __init__(self, ledger: "Ledger", address: str) -> None:
        if not address:
            raise ProtocolError(ErrorCode.ZERO_ADDRESS, "participant address is empty")
        self.ledger = ledger
        self.address = address
        ledger.register(self)

    def capture_state(self) -> Dict[str, Any]:
        memo = self.ledger.participants_memo()
        state = {name: copy.deepcopy(getattr(self, name), memo) for name in self._STATE_FIELDS}
        state.update({name: getattr(self, name) for name in self._REF_FIELDS})
        return state

    def restore_state(self, state: Dict[str, Any]) -> None:
        for name, value in state.items():
            setattr(self, name, value)

    def emit(self, event: str, **args: Any) -> AuditRecord:
        """Эмиссия audit-записи от имени участника."""
        return self.ledger.emit(self.address, event, args)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address!r})"


# =============================================================================
# CALL STACK
# =============================================================================


class CallFrame(NamedTuple):
    """Исполняющийся метод участника."""

    participant: LedgerParticipant
    action: str


# =============================================================================
# LEDGER
# =============================================================================


class Ledger:
    """
    Хост: высота блока, участники, audit log, атомарные вызовы.

    Args:
        height: Начальная высота блока
        validate_records: Проверять каждую audit-запись по JSON Schema
    """

    def __init__(self, height: int = 0, validate_records: bool = True) -> None:
        if height < 0:
            raise ValueError(f"height must be non-negative, got {height}")
        self._height = height
        self._participants: Dict[str, LedgerParticipant] = {}
        self._audit_log: List[AuditRecord] = []
        self._depth = 0
        self._frames: List[CallFrame] = []
        self._record_validator = AuditRecordValidator() if validate_records else None

    # -------------------------------------------------------------------------
    # Высота
    # -------------------------------------------------------------------------

    @property
    def height(self) -> int:
        return self._height

    def advance_blocks(self, count: int = 1) -> int:
        """Продвинуть высоту на count блоков. Возвращает новую высоту."""
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        if self._depth:
            raise InvariantViolation("height cannot change inside an atomic invocation")
        self._height += count
        return self._height

    def set_height(self, height: int) -> None:
        if height < self._height:
            raise ValueError(f"height cannot decrease: {height} < {self._height}")
        self.advance_blocks(height - self._height)

    # -------------------------------------------------------------------------
    # Участники
    # -------------------------------------------------------------------------

    def register(self, participant: LedgerParticipant) -> None:
        if participant.address in self._participants:
            raise ValueError(f"address already registered: {participant.address}")
        self._participants[participant.address] = participant

    def get(self, address: str) -> Optional[LedgerParticipant]:
        return self._participants.get(address)

    @property
    def participants(self) -> Tuple[LedgerParticipant, ...]:
        return tuple(self._participants.values())

    def participants_memo(self) -> Dict[int, Any]:
        """deepcopy memo, в котором каждый участник отображается сам в себя."""
        return {id(participant): participant for participant in self._participants.values()}

    # -------------------------------------------------------------------------
    # Audit log
    # -------------------------------------------------------------------------

    def emit(self, emitter: str, event: str, args: Dict[str, Any]) -> AuditRecord:
        record = AuditRecord.create(self._height, emitter, event, args)
        if self._record_validator is not None:
            self._record_validator.validate(record.to_dict())
        self._audit_log.append(record)
        return record

    @property
    def audit_log(self) -> Tuple[AuditRecord, ...]:
        return tuple(self._audit_log)

    def records(
        self,
        event: Optional[str] = None,
        emitter: Optional[str] = None,
    ) -> List[AuditRecord]:
        """Фильтр audit log по имени события и/или эмитенту."""
        return [
            record
            for record in self._audit_log
            if (event is None or record.event == event)
            and (emitter is None or record.emitter == emitter)
        ]

    # -------------------------------------------------------------------------
    # Стек вызовов
    # -------------------------------------------------------------------------

    @property
    def call_stack(self) -> Tuple[CallFrame, ...]:
        """Кадры исполняющихся методов, от внешнего к текущему."""
        return tuple(self._frames)

    def caller_frame(self) -> Optional[CallFrame]:
        """Кадр, из которого вызван текущий (верхний) метод; None для внешнего вызова."""
        if len(self._frames) < 2:
            return None
        return self._frames[-2]

    @contextmanager
    def _executing(self, participant: LedgerParticipant, action: str) -> Iterator[None]:
        self._frames.append(CallFrame(participant, action))
        try:
            yield
        finally:
            self._frames.pop()

    # -------------------------------------------------------------------------
    # Атомарность
    # -------------------------------------------------------------------------

    @property
    def in_invocation(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Атомарный вызов.

        Outermost: snapshot всех участников + длина log; при исключении:
        полный откат. Вложенный: просто выполняется в рамках внешнего.
        """
        if self._depth > 0:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        snapshots = {
            address: participant.capture_state()
            for address, participant in self._participants.items()
        }
        log_length = len(self._audit_log)
        registered = set(self._participants)

        self._depth = 1
        try:
            yield
        except BaseException as exc:
            for address, state in snapshots.items():
                self._participants[address].restore_state(state)
            for address in set(self._participants) - registered:
                del self._participants[address]
            del self._audit_log[log_length:]
            logger.warning(f"Invocation rolled back at height {self._height}: {exc!r}")
            raise
        finally:
            self._depth = 0


# =============================================================================
# DECORATORS
# =============================================================================


def atomic(method: F) -> F:
    """Выполнить метод участника внутри ledger.atomic() с кадром на стеке вызовов."""

    @wraps(method)
    def wrapper(self: LedgerParticipant, *args: Any, **kwargs: Any) -> Any:
        with self.ledger.atomic(), self.ledger._executing(self, method.__name__):
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def non_reentrant(method: F) -> F:
    """
    Атомарный вызов с защитой от повторного входа в того же участника.

    Участник должен иметь атрибут _entered (bool).
    """

    @wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        with self.ledger.atomic(), self.ledger._executing(self, method.__name__):
            if self._entered:
                raise ProtocolError(ErrorCode.REENTERED, f"{self.address}.{method.__name__}")
            self._entered = True
            try:
                return method(self, *args, **kwargs)
            finally:
                self._entered = False

    return wrapper  # type: ignore[return-value]
