"""Payload protection: encryption and PII masking."""

from requestguard.security.crypto import ALGORITHMS, MODES, PADDINGS, CryptoCodec
from requestguard.security.masking import (
    BUILTIN_MASKERS,
    MaskKind,
    SensitiveMasker,
    SensitiveRule,
    mask_address,
    mask_bank_card,
    mask_email,
    mask_id_card,
    mask_name,
    mask_phone,
    normalize_rules,
)
from requestguard.security.paths import get_path, set_path

__all__ = [
    # Crypto
    "ALGORITHMS",
    "MODES",
    "PADDINGS",
    "CryptoCodec",
    # Masking
    "BUILTIN_MASKERS",
    "MaskKind",
    "SensitiveMasker",
    "SensitiveRule",
    "mask_address",
    "mask_bank_card",
    "mask_email",
    "mask_id_card",
    "mask_name",
    "mask_phone",
    "normalize_rules",
    # Paths
    "get_path",
    "set_path",
]
