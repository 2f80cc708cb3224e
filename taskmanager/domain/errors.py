

### COMMENTS
# ============================================
# Konwencja użycia błędów domenowych w projekcie
# ============================================
# - Repozytoria (adaptery):
#     * wykrywają brak rekordów przy zapisie/usuwaniu
#     * mapują błędy techniczne (SQLAlchemyError) na TaskStorageError
#
# - Serwis:
#     * waliduje dane użytkownika i rzuca TaskValidationError
#     * brak zadania przy update/delete → TaskNotFoundError
#     * zadanie innego użytkownika → TaskAuthorizationError (to NIE jest "not found")
#
# - UI (CLI, HTTP):
#     * mapuje DomainError na komunikat / kod HTTP (400, 403, 404)
#     * wszystko inne traktuje jako błąd techniczny (500 + stacktrace w logu)


class DomainError(Exception):
    """Bazowa klasa dla błędów domenowych.
    Umożliwia odróżnienie błędów domeny (logika aplikacji) od błędów technicznych.
    Nie powinna być rzucana bezpośrednio — używaj klas pochodnych.
    """


class TaskValidationError(DomainError):
    """Rzucany, gdy dane wejściowe nie spełniają reguł biznesowych dla zadania.
    Przykłady:
    - tytuł jest pusty,
    - brak `user_id`,
    - status/priorytet spoza zamkniętego zestawu wartości.
    Zawiera komunikat (`message`) oraz nazwę pola (`field`), którego dotyczy błąd.
    """
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(self.__str__())
    def __str__(self):
        return self.message


class TaskNotFoundError(DomainError):
    """Rzucany, gdy żądane zadanie nie istnieje w repozytorium."""
    def __init__(self, task_id):
        self.task_id = task_id
        super().__init__(self.__str__())
    def __str__(self):
        return "Task not found"


class TaskAuthorizationError(DomainError):
    """Rzucany, gdy zadanie istnieje, ale należy do innego użytkownika.
    Celowo odrębny od `TaskNotFoundError` — wywołujący musi umieć rozróżnić oba przypadki.
    """
    def __init__(self, task_id, user_id):
        self.task_id = task_id
        self.user_id = user_id
        super().__init__(self.__str__())
    def __str__(self):
        return "Unauthorized"


class TaskStorageError(DomainError):
    """Błąd techniczny warstwy trwałości przemapowany przez adapter."""
