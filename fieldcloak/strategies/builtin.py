"""Built-in masking strategies.

Character masking goes through Presidio's ``mask`` operator so masked spans
look the same as the rest of the Presidio-based tooling.
"""

import hashlib
import logging
import threading
from typing import TYPE_CHECKING, Any, Optional

from presidio_anonymizer import AnonymizerEngine
from presidio_anonymizer.entities import OperatorConfig, RecognizerResult

from .base import IStrategy

if TYPE_CHECKING:
    from ..core.context import RunContext

logger = logging.getLogger(__name__)

MASKED_ENTITY = "SENSITIVE_FIELD"
DEFAULT_MASK_CHAR = "*"
VALID_HASH_ALGORITHMS = {"md5", "sha1", "sha256", "sha384", "sha512"}

_anonymizer: Optional[AnonymizerEngine] = None
_anonymizer_lock = threading.Lock()


def get_anonymizer() -> AnonymizerEngine:
    """Shared Presidio anonymizer; it holds no per-call state."""
    global _anonymizer
    if _anonymizer is None:
        with _anonymizer_lock:
            if _anonymizer is None:
                _anonymizer = AnonymizerEngine()
    return _anonymizer


def mask_span(text: str, start: int, end: int, mask_char: str = DEFAULT_MASK_CHAR) -> str:
    """Replace ``text[start:end]`` with ``mask_char`` repeated, keeping the rest."""
    start = max(0, start)
    end = min(len(text), end)
    if start >= end:
        return text

    entity = RecognizerResult(entity_type=MASKED_ENTITY, start=start, end=end, score=1.0)
    operator_config = OperatorConfig(
        "mask",
        {"masking_char": mask_char, "chars_to_mask": end - start, "from_end": False},
    )
    result = get_anonymizer().anonymize(
        text=text, analyzer_results=[entity], operators={MASKED_ENTITY: operator_config}
    )
    return str(result.text)


class PartialMaskStrategy(IStrategy):
    """Keep ``keep_start`` leading and ``keep_end`` trailing characters, mask the middle.

    Values too short to hide anything are returned unchanged, as are non-string
    values.
    """

    def __init__(self, keep_start: int = 0, keep_end: int = 4, mask_char: str = DEFAULT_MASK_CHAR):
        if keep_start < 0 or keep_end < 0:
            raise ValueError("keep_start and keep_end must be non-negative")
        if not isinstance(mask_char, str) or len(mask_char) != 1:
            raise ValueError("mask_char must be a single character string")
        self.keep_start = keep_start
        self.keep_end = keep_end
        self.mask_char = mask_char

    def mask(self, value: Any, context: "RunContext") -> Any:
        if not isinstance(value, str):
            return value
        return mask_span(value, self.keep_start, len(value) - self.keep_end, self.mask_char)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(keep_start={self.keep_start}, "
            f"keep_end={self.keep_end}, mask_char={self.mask_char!r})"
        )


class ChineseNameStrategy(IStrategy):
    """'张三' -> '张*', '脱敏君' -> '脱*君'."""

    def mask(self, value: Any, context: "RunContext") -> Any:
        if not isinstance(value, str) or len(value) <= 1:
            return value
        if len(value) == 2:
            return mask_span(value, 1, 2)
        return mask_span(value, 1, len(value) - 1)


class PhoneStrategy(PartialMaskStrategy):
    """'13812345678' -> '138****5678'."""

    def __init__(self) -> None:
        super().__init__(keep_start=3, keep_end=4)


class EmailStrategy(IStrategy):
    """'12345@qq.com' -> '123**@qq.com'; the domain is kept as is."""

    keep_start = 3

    def mask(self, value: Any, context: "RunContext") -> Any:
        if not isinstance(value, str):
            return value
        at = value.find("@")
        if at < 0:
            return mask_span(value, self.keep_start, len(value))
        return mask_span(value, self.keep_start, at)


class CardIdStrategy(PartialMaskStrategy):
    """'123456190001011234' -> '123456**********34'."""

    def __init__(self) -> None:
        super().__init__(keep_start=6, keep_end=2)


class BankCardStrategy(PartialMaskStrategy):
    """'6222600260001072444' -> '622260*********2444'."""

    def __init__(self) -> None:
        super().__init__(keep_start=6, keep_end=4)


class PasswordStrategy(IStrategy):
    """Passwords are never emitted in any form."""

    def mask(self, value: Any, context: "RunContext") -> Any:
        return None


class RedactStrategy(IStrategy):
    """Replace any non-None value with a fixed placeholder."""

    def __init__(self, replacement: str = "******"):
        self.replacement = replacement

    def mask(self, value: Any, context: "RunContext") -> Any:
        if value is None:
            return None
        return self.replacement


class HashStrategy(IStrategy):
    """Replace string values with a (salted, optionally truncated) hex digest.

    Deterministic for a given salt, so masked values can still be joined on.
    """

    def __init__(self, algorithm: str = "sha256", salt: str = "", truncate: Optional[int] = None):
        if algorithm not in VALID_HASH_ALGORITHMS:
            raise ValueError(f"Hash algorithm must be one of: {VALID_HASH_ALGORITHMS}")
        if truncate is not None and (not isinstance(truncate, int) or truncate < 1):
            raise ValueError("Truncate must be a positive integer")
        self.algorithm = algorithm
        self.salt = salt
        self.truncate = truncate

    def mask(self, value: Any, context: "RunContext") -> Any:
        if not isinstance(value, str):
            return value
        digest = hashlib.new(self.algorithm, (self.salt + value).encode("utf-8")).hexdigest()
        return digest[: self.truncate] if self.truncate else digest

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(algorithm={self.algorithm!r}, truncate={self.truncate})"
