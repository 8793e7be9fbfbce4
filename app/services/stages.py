"""Единая таблица стадий, раундов и слотов сетки на 2, 4 или 8 участников.

Раунды всегда нумеруются в полном трехраундовом пространстве: сетка на 8
стартует с 1-го раунда, на 4 со 2-го, на 2 сразу с 3-го. Поэтому идентификаторы
слотов вида "R2M1" и "R3M1" не зависят от размера сетки.
"""

from enum import Enum

from app.core.exceptions import InsufficientTeamsError


class Stage(str, Enum):
    QUARTER_FINALS = "Quarter-finals"
    SEMI_FINALS = "Semi-finals"
    FINALS = "Finals"


class RoundType(str, Enum):
    QUARTER_FINAL = "quarterFinal"
    SEMI_FINAL = "semiFinal"
    FINAL = "final"


class ParticipantStatus(str, Enum):
    INCOMPLETE = "incomplete"
    COMPLETED = "completed"


class MatchStatus(str, Enum):
    UNSCHEDULED = "unscheduled"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class TournamentProgress(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


BRACKET_SIZES = (8, 4, 2)
FINAL_ROUND = 3
FIRST_ROUND_BY_SIZE: dict[int, int] = {8: 1, 4: 2, 2: 3}
STAGES_BY_ROUND: dict[int, Stage] = {
    1: Stage.QUARTER_FINALS,
    2: Stage.SEMI_FINALS,
    3: Stage.FINALS,
}
ROUND_BY_STAGE: dict[Stage, int] = {stage: round_number for round_number, stage in STAGES_BY_ROUND.items()}
ROUND_TYPE_BY_STAGE: dict[Stage, RoundType] = {
    Stage.QUARTER_FINALS: RoundType.QUARTER_FINAL,
    Stage.SEMI_FINALS: RoundType.SEMI_FINAL,
    Stage.FINALS: RoundType.FINAL,
}

# Победители четвертьфиналов: 1-8 и 4-5 идут в верхнюю половину, 2-7 и 3-6 в нижнюю.
QUARTER_FINAL_SLOTS: dict[int, str] = {
    1: "R2M1",
    8: "R2M1",
    4: "R2M1",
    5: "R2M1",
    2: "R2M2",
    7: "R2M2",
    3: "R2M2",
    6: "R2M2",
}
FINAL_SLOT = "R3M1"


def bracket_size_for_team_count(team_count: int) -> int:
    # Берем самую большую сетку, которую можно заполнить.
    for size in BRACKET_SIZES:
        if team_count >= size:
            return size
    raise InsufficientTeamsError(f"Для сетки нужно минимум 2 команды, получено {team_count}")


def first_round_for_bracket(bracket_size: int) -> int:
    if bracket_size not in FIRST_ROUND_BY_SIZE:
        raise ValueError(f"Неподдерживаемый размер сетки: {bracket_size}")
    return FIRST_ROUND_BY_SIZE[bracket_size]


def stage_for_round(round_number: int, bracket_size: int) -> Stage:
    """Возвращает стадию для раунда с учетом размера сетки."""
    first_round = first_round_for_bracket(bracket_size)
    if not first_round <= round_number <= FINAL_ROUND:
        raise ValueError(f"Раунд {round_number} вне сетки на {bracket_size} участников")
    return STAGES_BY_ROUND[round_number]


def next_stage(stage: Stage) -> Stage | None:
    if stage == Stage.FINALS:
        return None
    return STAGES_BY_ROUND[ROUND_BY_STAGE[stage] + 1]


def round_type_for_stage(stage: Stage) -> RoundType:
    return ROUND_TYPE_BY_STAGE[stage]


def slot_id(round_number: int, match_number: int) -> str:
    return f"R{round_number}M{match_number}"


def bracket_order(bracket_size: int) -> list[int]:
    """Классический порядок посева: для 8 участников [1, 8, 4, 5, 2, 7, 3, 6]."""
    if bracket_size == 2:
        return [1, 2]
    upper_half = bracket_order(bracket_size // 2)
    order: list[int] = []
    for seed in upper_half:
        order.extend([seed, bracket_size + 1 - seed])
    return order


def first_round_pairings(bracket_size: int) -> list[tuple[int, int]]:
    # Пары (хозяева, гости): меньший номер посева играет дома.
    order = bracket_order(bracket_size)
    return [(order[idx], order[idx + 1]) for idx in range(0, len(order), 2)]


def next_match_slot_id(seed_position: int, stage: Stage) -> str | None:
    """Слот следующего матча, который займет победитель текущей стадии."""
    if stage == Stage.QUARTER_FINALS:
        return QUARTER_FINAL_SLOTS[seed_position]
    if stage == Stage.SEMI_FINALS:
        return FINAL_SLOT
    return None
