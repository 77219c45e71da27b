"""
Invoice Parsing Pipeline.

7-stage оркестратор:
1. Light Normalization: mojibake + пробелы (→ текст для классификатора)
2. Format Classification: domestic / regional / unknown (→ FormatClassification)
3. Format-Specific Normalization: очистка по формату (→ чистый текст)
4. Language Detection: локаль + уверенность (→ LanguageDetectionResult)
5. Extractor Registry: выбор экстрактора (UNKNOWN → generic)
6. Locale Extraction: поля счёта (→ InvoiceRecord)
7. Validation: оценка и проблемы (→ ValidationResult в копии записи)

Обработка документа тотальна: ошибка экстрактора локали не прерывает
пайплайн, запись собирает generic экстрактор, а причина попадает
в diagnostics результата.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from loguru import logger

from config.settings import UNKNOWN_LANGUAGE
from contracts.invoice_dto import InvoiceRecord, LanguageDetectionResult
from contracts.raw_text_dto import RawText
from .domain.interfaces import ILocaleExtractor
from .locales import ConfigLoader
from .s1_light_normalization import LightNormalizer
from .s2_format_classification import FormatClassification, FormatClassifier
from .s3_format_normalization import FormatNormalizer
from .s4_language_detection import LanguageDetector
from .s5_extractor_registry import ExtractorRegistry
from .s7_validation import InvoiceValidator


CORE_FIELDS = ("order_number", "order_date", "items", "subtotal", "tax", "shipping", "total")


def calculate_extraction_metrics(record: Optional[InvoiceRecord]) -> Dict[str, Any]:
    """Какие из основных полей найдены и доля найденных."""
    if record is None:
        fields = {name: False for name in CORE_FIELDS}
        return {"fields": fields, "overall": 0.0, "items_count": 0, "items_with_prices": 0}

    fields = {
        "order_number": bool(record.order_number and record.order_number.strip()),
        "order_date": bool(record.order_date and record.order_date.strip()),
        "items": bool(record.items),
        "subtotal": bool(record.subtotal and record.subtotal.strip()),
        "tax": bool(record.tax and record.tax.strip()),
        "shipping": bool(record.shipping and record.shipping.strip()),
        "total": bool(record.total and record.total.strip()),
    }
    return {
        "fields": fields,
        "overall": round(sum(fields.values()) / len(fields), 2),
        "items_count": len(record.items),
        "items_with_prices": sum(1 for item in record.items if item.total_price is not None),
    }


@dataclass
class PipelineResult:
    """
    Результат полного прогона пайплайна.

    ЦКП: Запись счёта + всё, что нужно для отладки (тексты стадий, тайминги).
    """
    record: InvoiceRecord
    source: Optional[RawText] = None
    light_text: str = ""
    normalized_text: str = ""
    format_classification: Optional[FormatClassification] = None
    extractor_code: str = ""
    timings_ms: Dict[str, float] = field(default_factory=dict)
    extraction_metrics: Dict[str, Any] = field(default_factory=dict)
    diagnostics: List[str] = field(default_factory=list)

    def processing_metadata(self) -> Dict[str, Any]:
        return {
            "pipeline": "seven-stage",
            "source": {
                "byte_length": self.source.byte_length,
                "page_count": self.source.page_count,
            } if self.source else None,
            "format": self.format_classification.to_dict() if self.format_classification else None,
            "extractor": self.extractor_code,
            "timings_ms": dict(self.timings_ms),
            "extraction_metrics": self.extraction_metrics,
            "diagnostics": list(self.diagnostics),
        }

    def to_dict(self) -> dict:
        return {
            "record": self.record.to_dict(),
            "light_text_length": len(self.light_text),
            "normalized_text_length": len(self.normalized_text),
            **self.processing_metadata(),
        }


class InvoicePipeline:
    """
    Оркестратор стадий 1-7.

    Стадии без состояния документа: один экземпляр можно использовать
    для любого числа счетов (в том числе из разных потоков).
    """

    def __init__(self, config_loader: Optional[ConfigLoader] = None) -> None:
        self.config_loader = config_loader or ConfigLoader()
        self.light_normalizer = LightNormalizer()
        self.format_classifier = FormatClassifier()
        self.format_normalizer = FormatNormalizer()
        self.language_detector = LanguageDetector(self.config_loader)
        self.registry = ExtractorRegistry(self.config_loader)
        self.validator = InvoiceValidator()
        logger.debug("[InvoicePipeline] Инициализирован (7 stages)")

    def preprocess(self, raw_text: str) -> str:
        """Stages 1-3: текст, на котором работают детектор и экстракторы."""
        light = self.light_normalizer.normalize(raw_text)
        tag = self.format_classifier.classify(light)
        return self.format_normalizer.normalize(light, tag)

    def process(self, raw_text: Union[str, RawText]) -> PipelineResult:
        """
        Прогоняет текст счёта через все стадии.

        Args:
            raw_text: Текст из экстрактора документа (str или RawText с метаданными)

        Returns:
            PipelineResult с записью (validation и language_detection присоединены)
        """
        timings: Dict[str, float] = {}
        diagnostics: List[str] = []
        started = time.perf_counter()
        if isinstance(raw_text, RawText):
            source = raw_text
        else:
            source = RawText.from_string(raw_text if isinstance(raw_text, str) else "")

        light = self._timed(timings, "light_normalization", self.light_normalizer.process, source.text)
        classification = self._timed(
            timings, "format_classification", self.format_classifier.classify_detailed, light.text
        )
        normalized = self._timed(
            timings, "format_normalization", self.format_normalizer.process, light.text, classification.tag
        )
        text = normalized.text

        detection: LanguageDetectionResult = self._timed(
            timings, "language_detection", self.language_detector.detect, text
        )
        if not detection.supported:
            diagnostics.append(
                f"Language not detected (confidence {detection.confidence}), generic extractor used"
            )

        extractor = self.registry.get_extractor(detection.language)
        record, extractor = self._timed(timings, "extraction", self._extract, extractor, text, diagnostics)

        record = record.model_copy(update={"language_detection": detection})
        record = self._timed(timings, "validation", self.validator.attach, record)

        timings["total"] = round((time.perf_counter() - started) * 1000, 3)
        metrics = calculate_extraction_metrics(record)

        logger.info(
            f"[InvoicePipeline] ✅ {classification.tag.value}/{detection.language} "
            f"({detection.confidence}) via {extractor.language_code}: "
            f"fields={metrics['overall']:.0%}, items={metrics['items_count']}, "
            f"score={record.validation.score}"
        )

        return PipelineResult(
            record=record,
            source=source,
            light_text=light.text,
            normalized_text=text,
            format_classification=classification,
            extractor_code=extractor.language_code,
            timings_ms=timings,
            extraction_metrics=metrics,
            diagnostics=diagnostics,
        )

    def _extract(self, extractor: ILocaleExtractor, text: str, diagnostics: List[str]):
        try:
            return extractor.extract(text), extractor
        except Exception as e:
            generic = self.registry.get_generic()
            if extractor is generic:
                raise
            logger.error(f"[InvoicePipeline] Экстрактор {extractor.language_code} упал: {e}, generic fallback")
            diagnostics.append(f"Extractor {extractor.language_code} failed: {type(e).__name__}: {e}")
            return generic.extract(text), generic

    @staticmethod
    def _timed(timings: Dict[str, float], stage: str, func: Callable, *args):
        started = time.perf_counter()
        result = func(*args)
        timings[stage] = round((time.perf_counter() - started) * 1000, 3)
        return result


_default_pipeline: Optional[InvoicePipeline] = None


def get_pipeline() -> InvoicePipeline:
    """Общий экземпляр пайплайна (создаётся при первом вызове)."""
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = InvoicePipeline()
    return _default_pipeline


def parse_invoice(raw_text: Union[str, RawText], debug: bool = False) -> Optional[InvoiceRecord]:
    """
    Разбирает текст счёта в InvoiceRecord.

    Args:
        raw_text: Текст из экстрактора документа (str или RawText)
        debug: Логировать тексты стадий и приложить processing_metadata к записи

    Returns:
        None только для пустого/не-str текста, иначе запись (возможно с пустыми полями)
    """
    text = raw_text.text if isinstance(raw_text, RawText) else raw_text
    if not isinstance(text, str) or not text:
        return None

    try:
        result = get_pipeline().process(raw_text)
    except Exception as e:
        logger.error(f"[InvoicePipeline] Пайплайн упал: {type(e).__name__}: {e}")
        return _empty_record(f"{type(e).__name__}: {e}")

    if not debug:
        return result.record

    logger.debug(f"[InvoicePipeline] Stage 1 текст ({len(result.light_text)}):\n{result.light_text[:500]}")
    logger.debug(f"[InvoicePipeline] Stage 3 текст ({len(result.normalized_text)}):\n{result.normalized_text[:500]}")
    logger.debug(f"[InvoicePipeline] Определение языка: {result.record.language_detection}")
    return result.record.model_copy(update={"processing_metadata": result.processing_metadata()})


def _empty_record(reason: str) -> InvoiceRecord:
    """Запись без полей для случая, когда упал сам пайплайн."""
    record = InvoiceRecord(
        language_detection=LanguageDetectionResult(
            language=UNKNOWN_LANGUAGE, confidence=0.0, evidence=reason, supported=False
        )
    )
    return InvoiceValidator().attach(record)


def get_available_parsers() -> Dict[str, Callable[[], ILocaleExtractor]]:
    """{код локали: фабрика экстрактора}."""
    return get_pipeline().registry.available_parsers()


def test_all_parsers(raw_text: str) -> Dict[str, Dict[str, Any]]:
    """
    Прогоняет предобработанный текст через каждый зарегистрированный экстрактор.

    Returns:
        {код: {"success": True, "invoice", "language", "country"}}
        или {код: {"success": False, "error"}}
    """
    pipeline = get_pipeline()
    text = pipeline.preprocess(raw_text) if isinstance(raw_text, str) else ""
    results: Dict[str, Dict[str, Any]] = {}

    for code, factory in pipeline.registry.available_parsers().items():
        try:
            extractor = factory()
            results[code] = {
                "success": True,
                "invoice": extractor.extract(text),
                "language": extractor.config.name,
                "country": extractor.language_code,
            }
        except Exception as e:
            logger.warning(f"[InvoicePipeline] test_all_parsers: {code} упал: {e}")
            results[code] = {"success": False, "error": str(e)}

    return results


def health_check() -> Dict[str, Any]:
    """Проверка стадий и всех зарегистрированных экстракторов."""
    results: Dict[str, Any] = {"overall": "healthy", "components": {}}
    components = results["components"]

    try:
        pipeline = get_pipeline()
    except Exception as e:
        return {"overall": "unhealthy", "components": {"pipeline": {"status": "unhealthy", "error": str(e)}}}

    sample = "Test Ã© text with â‚¬ symbols"
    try:
        processed = pipeline.preprocess(sample)
        components["normalizers"] = {"status": "healthy", "details": f'"{sample}" -> "{processed}"'}
    except Exception as e:
        components["normalizers"] = {"status": "unhealthy", "error": str(e)}
        results["overall"] = "unhealthy"

    try:
        detection = pipeline.language_detector.detect("Test invoice text")
        components["language_detector"] = {
            "status": "healthy",
            "details": f"Detected: {detection.language} ({detection.confidence})",
        }
    except Exception as e:
        components["language_detector"] = {"status": "unhealthy", "error": str(e)}
        results["overall"] = "unhealthy"

    components["extractors"] = {}
    for code, factory in pipeline.registry.available_parsers().items():
        try:
            extractor = factory()
            components["extractors"][code] = {"status": "healthy", "language": extractor.config.name}
        except Exception as e:
            components["extractors"][code] = {"status": "unhealthy", "error": str(e)}
            results["overall"] = "unhealthy"

    return results
