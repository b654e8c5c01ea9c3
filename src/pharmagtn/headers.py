from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from pharmagtn.schema import GTN_SCHEMA, FieldSpec, Schema

__all__ = ["HeaderResolution", "normalize_header_name", "resolve_headers", "significant_words"]

logger = logging.getLogger(__name__)

EXACT = "exact"
ALIAS = "alias"
FUZZY = "fuzzy"

PUNCTUATION_PATTERN = re.compile(r"[^0-9a-z]+")


@dataclass
class HeaderResolution:
    mapping: Dict[str, str] = field(default_factory=dict)
    missing: List[str] = field(default_factory=list)
    match_kinds: Dict[str, str] = field(default_factory=dict)
    ambiguous: Dict[str, List[str]] = field(default_factory=dict)

    def header_for(self, name: str) -> Optional[str]:
        return self.mapping.get(name)

    @property
    def fuzzy_matches(self) -> Dict[str, str]:
        return {name: self.mapping[name] for name, kind in self.match_kinds.items() if kind == FUZZY}


def normalize_header_name(name: object) -> str:
    cleaned = unicodedata.normalize("NFKD", str(name or ""))
    cleaned = cleaned.replace("\u00A0", " ").replace("\u202F", " ")
    cleaned = cleaned.replace("\u200B", "").replace("\ufeff", "")
    cleaned = "".join(ch for ch in cleaned if unicodedata.category(ch) != "Mn")
    cleaned = cleaned.casefold()
    cleaned = PUNCTUATION_PATTERN.sub(" ", cleaned)
    return " ".join(cleaned.split())


def significant_words(text: str) -> List[str]:
    return [word for word in normalize_header_name(text).split() if len(word) > 2]


def _word_pattern(word: str) -> re.Pattern:
    stem = word[:-1] if word.endswith("s") and len(word) > 3 else word
    return re.compile(r"\b" + re.escape(stem))


def _fuzzy_matches(spec: FieldSpec, normalized_header: str) -> bool:
    words = significant_words(spec.canonical)
    if not words:
        return False
    return all(_word_pattern(word).search(normalized_header) for word in words)


def resolve_headers(header: Iterable[str], schema: Schema = GTN_SCHEMA) -> HeaderResolution:
    """Map the literal header row onto the schema's canonical fields.

    Every field is tried by exact name first, then by alias, then by the
    word-containment fallback; a header claimed once is never reused.
    """
    candidates = [(str(name), normalize_header_name(name)) for name in header if str(name).strip()]
    resolution = HeaderResolution()
    claimed: set[str] = set()

    def claim(spec: FieldSpec, original: str, kind: str) -> None:
        resolution.mapping[spec.name] = original
        resolution.match_kinds[spec.name] = kind
        claimed.add(original)

    def unclaimed() -> List[tuple[str, str]]:
        return [(original, normalized) for original, normalized in candidates if original not in claimed]

    specs = schema.fields

    for spec in specs:
        targets = {normalize_header_name(spec.canonical), normalize_header_name(spec.label)}
        for original, normalized in unclaimed():
            if normalized in targets:
                claim(spec, original, EXACT)
                break

    for spec in specs:
        if spec.name in resolution.mapping:
            continue
        aliases = [normalize_header_name(alias) for alias in spec.aliases]
        available = {normalized: original for original, normalized in reversed(unclaimed())}
        for alias in aliases:
            if alias in available:
                claim(spec, available[alias], ALIAS)
                break

    for spec in specs:
        if spec.name in resolution.mapping:
            continue
        matches = [original for original, normalized in unclaimed() if _fuzzy_matches(spec, normalized)]
        if len(matches) == 1:
            claim(spec, matches[0], FUZZY)
            logger.info("Header '%s' matched to '%s' by word containment", matches[0], spec.name)
        elif len(matches) > 1:
            resolution.ambiguous[spec.name] = matches
            logger.info("Header match for '%s' is ambiguous: %s", spec.name, matches)

    resolution.missing = [spec.name for spec in specs if spec.name not in resolution.mapping]
    return resolution
