class StorefrontError(Exception):
    """Базовая ошибка библиотеки"""


class ValidationError(StorefrontError):
    """Некорректный ввод, обнаружен локально; до хранилища не доходит"""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message)
        self.message = message
        self.field = field


class RemoteOperationError(StorefrontError):
    """Сбой get/query/listen/transaction/batch; сообщение передаётся как есть"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
