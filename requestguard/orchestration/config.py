"""Policy options and configuration resolution.

Every policy (cache, retry, duplicated, loading, crypto, sensitive) accepts
either a boolean or an options object on the client and on each call. The
ConfigResolver normalizes those values once per request into a Policy: a
disabled marker or enabled options. Call sites downstream never narrow
boolean-or-object unions themselves.
"""

import dataclasses
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

O = TypeVar("O")

# Operational hazard: replace through REQUESTGUARD_CRYPTO_KEY or per call.
DEFAULT_CRYPTO_KEY = "requestguard-key"


@dataclass(frozen=True)
class CacheOptions:
    """Options for response caching.

    Attributes:
        cache_time: Time to live of an entry in milliseconds.
        max_size: Maximum number of entries; oldest is evicted first.
            None means unbounded.
        validate: Optional predicate on the transport response deciding
            whether the response may be cached.
    """

    cache_time: int = 5000
    max_size: int | None = 50
    validate: Callable[[Any], bool] | None = None


@dataclass(frozen=True)
class RetryOptions:
    """Options for bounded retry.

    Attributes:
        count: Maximum number of retries after the first attempt.
        delay: Wait before each retry in milliseconds.
        before_retry: Optional hook called with (error, retry_count) before
            each retry. Returning False vetoes the retry.
    """

    count: int = 3
    delay: int = 500
    before_retry: Callable[[Exception, int], bool | Awaitable[bool] | None] | None = None


@dataclass(frozen=True)
class DuplicatedOptions:
    """Options for duplicate-request suppression.

    Attributes:
        timeout: Inactivity timeout in milliseconds after which an
            in-flight entry is canceled and dropped. None disables it.
    """

    timeout: int | None = 5000


@dataclass(frozen=True)
class LoadingOptions:
    """Options for the busy indicator."""

    target: str = "default"
    loading_text: str = "Loading..."


@dataclass(frozen=True)
class CryptoOptions:
    """Options for payload encryption.

    Attributes:
        algorithm: Block cipher name (AES, Camellia, SM4).
        key: Cipher key as text; its UTF-8 length selects the key size.
        mode: Cipher mode (ECB, CBC).
        padding: Padding scheme (PKCS7, ANSIX923, NONE).
        fields: Dot paths to encrypt individually. Empty means the whole
            payload is encrypted as one unit.
    """

    algorithm: str = "AES"
    key: str = DEFAULT_CRYPTO_KEY
    mode: str = "ECB"
    padding: str = "PKCS7"
    fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class SensitiveOptions:
    """Options for response masking.

    Attributes:
        rules: Masking rules (SensitiveRule instances or mappings with
            path and type or custom), applied in order.
    """

    rules: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Policy(Generic[O]):
    """Resolved state of a single policy: disabled, or enabled with options."""

    enabled: bool
    options: O | None = None

    @classmethod
    def disabled(cls) -> "Policy[O]":
        """Create a disabled policy."""
        return cls(enabled=False)

    @classmethod
    def enabled_with(cls, options: O) -> "Policy[O]":
        """Create an enabled policy carrying its options."""
        return cls(enabled=True, options=options)


# Policy name -> options type
POLICY_OPTIONS: dict[str, type] = {
    "cache": CacheOptions,
    "retry": RetryOptions,
    "duplicated": DuplicatedOptions,
    "loading": LoadingOptions,
    "crypto": CryptoOptions,
    "sensitive": SensitiveOptions,
}

# Global defaults when nothing is configured
DEFAULT_POLICIES: dict[str, Any] = {
    "retry": True,
    "loading": True,
    "duplicated": True,
    "cache": False,
    "sensitive": False,
    "crypto": False,
}


@dataclass(frozen=True)
class ResolvedConfig:
    """Per-request policies after resolution."""

    cache: Policy[CacheOptions] = field(default_factory=Policy.disabled)
    retry: Policy[RetryOptions] = field(default_factory=Policy.disabled)
    duplicated: Policy[DuplicatedOptions] = field(default_factory=Policy.disabled)
    loading: Policy[LoadingOptions] = field(default_factory=Policy.disabled)
    crypto: Policy[CryptoOptions] = field(default_factory=Policy.disabled)
    sensitive: Policy[SensitiveOptions] = field(default_factory=Policy.disabled)


def _override(name: str, base: Any, overrides: Mapping[str, Any]) -> Any:
    """Apply a shallow field-by-field override to an options object."""
    known = {f.name for f in dataclasses.fields(base)}
    unknown = sorted(k for k in overrides if k not in known and k != "enabled")
    if unknown:
        logger.warning("policy_unknown_options", policy=name, options=unknown)
    changes = {k: v for k, v in overrides.items() if k in known}
    for key in ("fields", "rules"):
        if key in changes and changes[key] is not None:
            changes[key] = tuple(changes[key])
    return dataclasses.replace(base, **changes)


def _as_overrides(value: Any) -> Mapping[str, Any] | None:
    """Turn an options object or mapping into an override mapping."""
    if isinstance(value, Mapping):
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    return None


class ConfigResolver:
    """Merges global policy defaults with per-call overrides.

    Example:
        resolver = ConfigResolver({"cache": {"cache_time": 10_000}})
        config = resolver.resolve({"retry": False, "cache": True})
        assert config.cache.options.cache_time == 10_000
        assert not config.retry.enabled
    """

    def __init__(self, defaults: Mapping[str, Any] | None = None) -> None:
        """Initialize the resolver.

        Args:
            defaults: Global policy values, layered over DEFAULT_POLICIES.
        """
        self._defaults: dict[str, Policy[Any]] = {}
        for name in POLICY_OPTIONS:
            builtin = Policy.enabled_with(POLICY_OPTIONS[name]())
            self._defaults[name] = self.resolve_policy(name, builtin, DEFAULT_POLICIES[name])
        if defaults:
            self.update_defaults(defaults)

    @property
    def defaults(self) -> dict[str, Policy[Any]]:
        """Current global policies."""
        return dict(self._defaults)

    def update_defaults(self, overrides: Mapping[str, Any]) -> None:
        """Merge new global policy values into the current defaults.

        Args:
            overrides: Policy name to boolean, mapping or options object.
        """
        for name, value in overrides.items():
            if name not in POLICY_OPTIONS:
                logger.warning("policy_unknown", policy=name)
                continue
            self._defaults[name] = self.resolve_policy(name, self._defaults[name], value)

    @staticmethod
    def resolve_policy(name: str, base: Policy[Any], value: Any) -> Policy[Any]:
        """Resolve a single policy value against its base.

        Args:
            name: Policy name.
            base: Policy this value overrides. Its options are kept even
                when it is disabled so that True can re-enable them.
            value: None, bool, mapping or options object.

        Returns:
            The resolved policy.
        """
        base_options = base.options if base.options is not None else POLICY_OPTIONS[name]()
        if value is None:
            return base
        if value is True:
            return Policy.enabled_with(base_options)
        if value is False:
            return Policy(enabled=False, options=base_options)
        overrides = _as_overrides(value)
        if overrides is None:
            logger.debug("policy_unsupported_value", policy=name, value_type=type(value).__name__)
            return Policy(enabled=False, options=base_options)
        options = _override(name, base_options, overrides)
        if overrides.get("enabled", True) is False:
            return Policy(enabled=False, options=options)
        return Policy.enabled_with(options)

    def resolve(
        self,
        per_call: Mapping[str, Any] | None = None,
        global_defaults: Mapping[str, Any] | None = None,
    ) -> ResolvedConfig:
        """Resolve per-call policy values into a ResolvedConfig.

        Args:
            per_call: Policy values given for this call.
            global_defaults: Optional one-off global values used instead of
                the resolver's stored defaults.

        Returns:
            Policies for this request. Disabled policies carry no options.
        """
        per_call = per_call or {}
        for name in per_call:
            if name not in POLICY_OPTIONS:
                logger.warning("policy_unknown", policy=name)
        base = self._defaults
        if global_defaults is not None:
            base = ConfigResolver(global_defaults)._defaults

        resolved: dict[str, Policy[Any]] = {}
        for name in POLICY_OPTIONS:
            policy = self.resolve_policy(name, base[name], per_call.get(name))
            resolved[name] = policy if policy.enabled else Policy.disabled()
        return ResolvedConfig(**resolved)


def resolve(
    global_defaults: Mapping[str, Any] | None,
    per_call: Mapping[str, Any] | None,
) -> ResolvedConfig:
    """Resolve a call's policies against global defaults.

    Pure helper around ConfigResolver for one-off resolution.
    """
    return ConfigResolver(global_defaults).resolve(per_call)


def ms_to_seconds(value: int | float | None) -> float | None:
    """Convert a millisecond option into seconds."""
    if value is None:
        return None
    return value / 1000
