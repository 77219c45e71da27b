"""
Исключения для домена Invoice Parsing.

Бросаются только при ошибках конфигурации и программных ошибках.
Обработка отдельного документа исключений наружу не выпускает.
"""


class ParsingError(Exception):
    """Базовое исключение для ошибок домена Invoice Parsing."""

    def __init__(self, message: str, component: str = None, original_error: Exception = None):
        self.message = message
        self.component = component
        self.original_error = original_error
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Parsing Error: {self.message}"
        if self.component:
            msg += f" (Component: {self.component})"
        if self.original_error:
            msg += f" [Original: {type(self.original_error).__name__}: {str(self.original_error)}]"
        return msg


class ParsingConfigurationError(ParsingError):
    """Ошибка конфигурации локали (нет файла, битый YAML, невалидный regex)."""
    pass


class ExtractorNotFoundError(ParsingError):
    """Экстрактор для кода языка не зарегистрирован (строгий режим реестра)."""
    pass
