class TaskValidationError(ValueError):
    """Некорректные входные данные (пустой title и т.п.). В HTTP -> 400."""


class MalformedRecordError(ValueError):
    """Строка снапшота не разбирается. Строку пропускаем, загрузка продолжается."""
