"""PII masking of response payloads.

Rules address fields by dot path and either name a builtin masker or supply
a custom function. Rules run in declaration order on a deep copy of the
payload; the input is never mutated. When rules overlap, each rule sees the
output of the previous ones, so the last rule wins.
"""

import copy
import inspect
import re
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from requestguard.security.paths import get_path, set_path

logger = structlog.get_logger(__name__)


class MaskKind(str, Enum):
    """Builtin masker kinds."""

    PHONE = "phone"
    EMAIL = "email"
    ID_CARD = "idCard"
    BANK_CARD = "bankCard"
    NAME = "name"
    ADDRESS = "address"


class SensitiveRule(BaseModel):
    """A masking rule: a path plus a builtin kind or a custom function."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: str = Field(..., min_length=1, description="Dot-delimited field path")
    type: MaskKind | None = Field(default=None, description="Builtin masker")
    custom: Callable[[Any], Any] | None = Field(default=None, description="Custom masker")

    @model_validator(mode="after")
    def check_single_masker(self) -> "SensitiveRule":
        """Require exactly one of type or custom."""
        if (self.type is None) == (self.custom is None):
            raise ValueError("a rule needs exactly one of 'type' or 'custom'")
        return self


def mask_phone(value: str) -> str:
    """Keep the first 3 and last 4 digits: 138****5678."""
    return re.sub(r"(\d{3})\d{4}(\d{4})", r"\1****\2", value, count=1)


def mask_email(value: str) -> str:
    """Keep the first 2 characters and the domain: ab***@example.com."""
    return re.sub(r"(.{2}).*(@.*)", r"\1***\2", value, count=1)


def mask_id_card(value: str) -> str:
    """Keep the first 4 and last 4 characters of an 18-digit id."""
    return re.sub(r"(\d{4})\d{10}(\w{4})", r"\1**********\2", value, count=1)


def mask_bank_card(value: str) -> str:
    """Keep the first 4 and last 4 digits."""
    return re.sub(r"(\d{4})\d{8,12}(\d{4})", r"\1********\2", value, count=1)


def mask_name(value: str) -> str:
    """Keep the first character."""
    return re.sub(r"(.).*", r"\1*", value, count=1)


def mask_address(value: str) -> str:
    """Keep the first 3 and last 3 characters."""
    return re.sub(r"(.{3}).*(.{3})", r"\1***\2", value, count=1)


BUILTIN_MASKERS: dict[MaskKind, Callable[[str], str]] = {
    MaskKind.PHONE: mask_phone,
    MaskKind.EMAIL: mask_email,
    MaskKind.ID_CARD: mask_id_card,
    MaskKind.BANK_CARD: mask_bank_card,
    MaskKind.NAME: mask_name,
    MaskKind.ADDRESS: mask_address,
}


def _is_absent(value: Any) -> bool:
    return value is None or value == ""


def normalize_rules(rules: Iterable[Any]) -> list[SensitiveRule]:
    """Validate rules given as SensitiveRule instances or mappings."""
    return [
        rule if isinstance(rule, SensitiveRule) else SensitiveRule.model_validate(rule)
        for rule in rules
    ]


class SensitiveMasker:
    """Applies masking rules to payloads.

    Example:
        masker = SensitiveMasker()
        masked = await masker.desensitize(
            {"user": {"phone": "13812345678"}},
            [{"path": "user.phone", "type": "phone"}],
        )
        # {"user": {"phone": "138****5678"}}
    """

    @staticmethod
    def _apply_builtin(kind: MaskKind, value: Any) -> Any:
        return BUILTIN_MASKERS[kind](value if isinstance(value, str) else str(value))

    async def desensitize(self, payload: Any, rules: Iterable[Any]) -> Any:
        """Mask a payload. Custom maskers may be coroutine functions.

        Args:
            payload: Data to mask; left unmodified.
            rules: Rules applied in order.

        Returns:
            A masked deep copy of the payload, or the payload itself when
            there are no rules.
        """
        checked = normalize_rules(rules)
        if not checked or payload is None:
            return payload

        result = copy.deepcopy(payload)
        for rule in checked:
            value = get_path(result, rule.path)
            if _is_absent(value):
                continue
            if rule.custom is not None:
                masked = rule.custom(value)
                if inspect.isawaitable(masked):
                    masked = await masked
            elif rule.type is not None:
                masked = self._apply_builtin(rule.type, value)
            set_path(result, rule.path, masked)

        logger.debug("payload_desensitized", rules=len(checked))
        return result

    def desensitize_sync(self, payload: Any, rules: Iterable[Any]) -> Any:
        """Mask a payload with synchronous maskers only.

        Raises:
            TypeError: If a custom masker returns an awaitable.
        """
        checked = normalize_rules(rules)
        if not checked or payload is None:
            return payload

        result = copy.deepcopy(payload)
        for rule in checked:
            value = get_path(result, rule.path)
            if _is_absent(value):
                continue
            if rule.custom is not None:
                masked = rule.custom(value)
                if inspect.isawaitable(masked):
                    if inspect.iscoroutine(masked):
                        masked.close()
                    raise TypeError(f"custom masker for '{rule.path}' is async; use desensitize()")
            elif rule.type is not None:
                masked = self._apply_builtin(rule.type, value)
            set_path(result, rule.path, masked)
        return result
