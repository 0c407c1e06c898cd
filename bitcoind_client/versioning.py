"""Version gating for daemon methods and features."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import Version

from .errors import InvalidVersionError
from .methods import MethodDescriptor, MethodRegistry

LOGGER = logging.getLogger(__name__)

NAMED_PARAMETERS_RANGE = ">=0.14.0"

_VERSION_PATTERN = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+")


def normalize_version(raw: Optional[str]) -> Optional[str]:
    """Return the leading ``X.Y.Z`` of ``raw``.

    Bitcoin Core has released oddly formatted four-part versions such as
    ``0.15.0.1``; only the first three components take part in gating.
    """

    if raw is None:
        return None
    value = str(raw).strip()
    if not value:
        return None
    match = _VERSION_PATTERN.search(value)
    if not match:
        raise InvalidVersionError(value)
    return match.group(0)


def _translate_comparator(comparator: str) -> str:
    if comparator.startswith("=") and not comparator.startswith("=="):
        return f"={comparator}"
    return comparator


@lru_cache(maxsize=None)
def _parse_range(constraint: str) -> Tuple[SpecifierSet, ...]:
    """Translate a semver-style range into PEP 440 specifier sets.

    Comparators separated by whitespace must all match; ``||`` separates
    alternatives.
    """

    alternatives = []
    for alternative in constraint.split("||"):
        comparators = [_translate_comparator(part) for part in alternative.split()]
        try:
            alternatives.append(SpecifierSet(",".join(comparators)))
        except InvalidSpecifier as exc:
            raise ValueError(f'Invalid version range "{constraint}"') from exc
    return tuple(alternatives)


def satisfies(version: str, constraint: str) -> bool:
    parsed = Version(version)
    return any(spec.contains(parsed, prereleases=True) for spec in _parse_range(constraint))


def evaluate(descriptor: MethodDescriptor, version: Optional[str]) -> bool:
    if version is None:
        return True
    return satisfies(version, descriptor.version_range)


def evaluate_feature(constraint: str, version: Optional[str]) -> bool:
    if version is None:
        return True
    return satisfies(version, constraint)


@dataclass(frozen=True)
class FeatureSupport:
    supported: bool


@dataclass(frozen=True)
class MethodSupport:
    supported: bool
    features: Mapping[str, FeatureSupport] = field(default_factory=dict)

    def has_feature(self, name: str) -> bool:
        feature = self.features.get(name)
        return feature is not None and feature.supported


@dataclass(frozen=True)
class ClientCapabilities:
    """Per-client support flags, computed once from the configured version."""

    version: Optional[str]
    supports_named_parameters: bool
    method_support: Mapping[str, MethodSupport]

    def is_supported(self, method: str) -> bool:
        support = self.method_support.get(method.lower())
        return support is not None and support.supported

    def has_feature(self, method: str, feature: str) -> bool:
        support = self.method_support.get(method.lower())
        return support is not None and support.has_feature(feature)


def compute_capabilities(registry: MethodRegistry, raw_version: Optional[str]) -> ClientCapabilities:
    version = normalize_version(raw_version)
    method_support: Dict[str, MethodSupport] = {}
    for descriptor in registry:
        features = {
            name: FeatureSupport(supported=evaluate_feature(constraint, version))
            for name, constraint in descriptor.features.items()
        }
        method_support[descriptor.key] = MethodSupport(
            supported=evaluate(descriptor, version),
            features=MappingProxyType(features),
        )
    named = version is not None and satisfies(version, NAMED_PARAMETERS_RANGE)
    LOGGER.debug(
        "Computed client capabilities",
        extra={"version": version, "named_parameters": named},
    )
    return ClientCapabilities(
        version=version,
        supports_named_parameters=named,
        method_support=MappingProxyType(method_support),
    )
