"""
DTO контракт: внешний экстрактор текста -> Invoice Parsing.

Сырой текст счёта и метаданные источника. Принадлежит вызывающему коду
и живёт один вызов пайплайна.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RawText(BaseModel):
    """
    Сырой текст, извлечённый из документа счёта.

    ЦКП: Неизменяемый вход пайплайна.
    """

    text: str = Field("", description="Текст документа как извлечён (возможен mojibake)")
    byte_length: Optional[int] = Field(None, description="Размер исходного документа в байтах")
    page_count: Optional[int] = Field(None, description="Количество страниц исходного документа")

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @field_validator("byte_length", "page_count")
    @classmethod
    def validate_non_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Metadata values must be non-negative")
        return v

    @classmethod
    def from_string(cls, text: str, page_count: Optional[int] = None) -> "RawText":
        """Создаёт RawText из строки, вычисляя byte_length."""
        return cls(
            text=text,
            byte_length=len(text.encode("utf-8", errors="replace")),
            page_count=page_count,
        )
