"""Ошибки сервисного слоя сетки плей-офф."""


class BracketError(Exception):
    """Базовая ошибка для всех операций с сеткой."""


class TournamentNotFoundError(BracketError):
    """Турнир с указанным id не существует."""


class InsufficientTeamsError(BracketError):
    """Для посева нужно минимум 2 команды."""


class ParticipantNotFoundError(BracketError):
    """Участник не найден, выбыл или не может играть этот матч."""


class InvalidScoreError(BracketError):
    """Счет отрицательный или ничейный."""


class DuplicateMatchCreationError(BracketError):
    """Матчи стадии уже созданы. Не должна доходить до вызывающего кода."""


class TransitionFailedError(BracketError):
    """Ошибка хранилища посреди перехода, все изменения откачены."""


# Ошибки входных данных проходят к вызывающему коду как есть, любая другая
# ошибка посреди перехода оборачивается в TransitionFailedError.
CALLER_ERRORS = (TournamentNotFoundError, InsufficientTeamsError, ParticipantNotFoundError, InvalidScoreError)
