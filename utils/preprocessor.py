# utils/preprocessor.py
"""
Content Normalizer
Cleans, fingerprints and deduplicates raw row text before it reaches the Router.

Everything here is pure: no I/O, no logging, linear in input length.
The SHA-256 of the cleaned text is the request cache key, so identical
cleaned text always produces the identical hash.
"""

import hashlib
import re
from typing import Dict, List, Optional, Set, Tuple

from pydantic import BaseModel


class PreprocessorOptions(BaseModel):
    """Cleaning switches, defaults keep case and punctuation for analysis"""
    normalize_whitespace: bool = True
    remove_special_chars: bool = False
    anonymize: bool = False
    to_lower_case: bool = False
    max_length: Optional[int] = 10000


class PreprocessMetadata(BaseModel):
    original_length: int
    cleaned_length: int
    was_modified: bool
    anonymized: bool


class PreprocessedText(BaseModel):
    """Normalized row text plus its content fingerprint"""
    original_text: str
    cleaned_text: str
    hash: str
    metadata: PreprocessMetadata


DEFAULT_OPTIONS = PreprocessorOptions()

# Control characters other than tab / newline / carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_SPACES = re.compile(r"[ \t]+")
_SPACE_AROUND_NEWLINE = re.compile(r" ?\n ?")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")
_SPECIAL_CHARS = re.compile(r"[^\w\s.,!?;:'\"()-]")

# Order matters: card numbers before phone/SSN so their digits are not split up
ANONYMIZATION_PATTERNS = [
    ("[EMAIL]", re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")),
    ("[CREDIT_CARD]", re.compile(r"\b\d{4}[-.\s]?\d{4}[-.\s]?\d{4}[-.\s]?\d{4}\b")),
    ("[IP_ADDRESS]", re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b")),
    ("[SSN]", re.compile(r"\b\d{3}[-.\s]?\d{2}[-.\s]?\d{4}\b")),
    ("[PHONE]", re.compile(r"(?:\+?1[-.\s]?)?\(?\b\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b")),
]


def generate_hash(text: str) -> str:
    """SHA-256 hex digest of text, used for caching and deduplication"""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize_whitespace(text: str) -> str:
    """
    - Normalize line endings to \\n
    - Drop control characters
    - Collapse runs of spaces/tabs to a single space
    - Keep at most two consecutive newlines
    - Trim leading/trailing whitespace
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS.sub("", text)
    text = _SPACES.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE.sub("\n", text)
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()


def remove_special_chars(text: str) -> str:
    """Keep letters, digits, basic punctuation and whitespace"""
    return _SPECIAL_CHARS.sub("", text)


def anonymize_text(text: str) -> str:
    """Replace emails, card numbers, IPs, SSNs and phone numbers with placeholders"""
    for placeholder, pattern in ANONYMIZATION_PATTERNS:
        text = pattern.sub(placeholder, text)
    return text


def truncate_text(text: str, max_length: int) -> str:
    """Truncate at the last word boundary before max_length"""
    if len(text) <= max_length:
        return text

    cut = text.rfind(" ", 0, max_length + 1)
    if cut <= 0:
        return text[:max_length] + "..."
    return text[:cut] + "..."


def preprocess_text(text: str, options: Optional[PreprocessorOptions] = None) -> PreprocessedText:
    """
    Clean text and compute its fingerprint.

    Args:
        text: Raw row text
        options: Cleaning switches (defaults: whitespace normalization + 10k truncation)

    Returns:
        PreprocessedText with cleaned_text, hash and metadata

    Raises:
        TypeError: text is not a string
    """
    if not isinstance(text, str):
        raise TypeError(f"preprocess_text expects str, got {type(text).__name__}")

    opts = options or DEFAULT_OPTIONS
    cleaned = text

    if opts.normalize_whitespace:
        cleaned = normalize_whitespace(cleaned)
    else:
        cleaned = _CONTROL_CHARS.sub("", cleaned)

    if opts.remove_special_chars:
        cleaned = remove_special_chars(cleaned)

    if opts.anonymize:
        cleaned = anonymize_text(cleaned)

    if opts.to_lower_case:
        cleaned = cleaned.lower()

    if opts.max_length and len(cleaned) > opts.max_length:
        cleaned = truncate_text(cleaned, opts.max_length)

    return PreprocessedText(
        original_text=text,
        cleaned_text=cleaned,
        hash=generate_hash(cleaned),
        metadata=PreprocessMetadata(
            original_length=len(text),
            cleaned_length=len(cleaned),
            was_modified=cleaned != text,
            anonymized=opts.anonymize,
        ),
    )


def normalize(raw: str) -> PreprocessedText:
    """One row with the default options the batch pipeline uses"""
    return preprocess_text(raw)


def preprocess_batch(
    texts: List[str],
    options: Optional[PreprocessorOptions] = None
) -> Tuple[List[PreprocessedText], Set[str], Dict[int, int]]:
    """
    Preprocess many texts and report duplicates.

    Returns:
        (results, unique_hashes, duplicate_indices) where duplicate_indices
        maps the index of each repeated text to the index of its first occurrence
    """
    results: List[PreprocessedText] = []
    first_seen: Dict[str, int] = {}
    duplicate_indices: Dict[int, int] = {}

    for i, text in enumerate(texts):
        result = preprocess_text(text, options)
        results.append(result)

        if result.hash in first_seen:
            duplicate_indices[i] = first_seen[result.hash]
        else:
            first_seen[result.hash] = i

    return results, set(first_seen), duplicate_indices
