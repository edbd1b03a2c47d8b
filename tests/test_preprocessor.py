"""Tests for utils/preprocessor.py."""

import hashlib

import pytest

from utils.preprocessor import (
    PreprocessorOptions,
    generate_hash,
    normalize,
    normalize_whitespace,
    preprocess_batch,
    preprocess_text,
    truncate_text,
)


def test_normalize_collapses_spaces_and_trims():
    assert normalize("  hello   \t world  ").cleaned_text == "hello world"


def test_normalize_whitespace_line_endings_and_blank_lines():
    assert normalize_whitespace("a\r\nb\rc") == "a\nb\nc"
    assert normalize_whitespace("a\n\n\n\nb") == "a\n\nb"
    assert normalize_whitespace(" a \n b ") == "a\nb"


def test_normalize_drops_control_characters():
    assert normalize("a\x00b\x07c").cleaned_text == "abc"


def test_hash_is_sha256_of_cleaned_text():
    result = normalize("  The sky is blue.  ")
    assert result.cleaned_text == "The sky is blue."
    assert result.hash == hashlib.sha256("The sky is blue.".encode("utf-8")).hexdigest()
    assert result.hash == generate_hash(result.cleaned_text)


def test_hash_is_deterministic():
    assert normalize("Same text").hash == normalize("Same text").hash


def test_hash_equal_iff_cleaned_text_equal():
    assert normalize("Hello   world").hash == normalize(" Hello world\n").hash
    assert normalize("Hello world").hash != normalize("Hello world!").hash
    # Case is preserved by default, so it changes the fingerprint
    assert normalize("hello world").hash != normalize("Hello world").hash


def test_empty_text_normalizes_to_empty_string():
    result = normalize("   \n\t ")
    assert result.cleaned_text == ""
    assert result.hash == generate_hash("")


def test_metadata_reports_modification():
    unchanged = normalize("clean")
    changed = normalize(" clean ")
    assert unchanged.metadata.was_modified is False
    assert changed.metadata.was_modified is True
    assert changed.metadata.original_length == 7
    assert changed.metadata.cleaned_length == 5


def test_preprocess_text_rejects_non_string():
    with pytest.raises(TypeError):
        preprocess_text(42)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Mail me at john.doe@example.com", "Mail me at [EMAIL]"),
        ("Card 4111 1111 1111 1111 on file", "Card [CREDIT_CARD] on file"),
        ("Server 192.168.1.10 is down", "Server [IP_ADDRESS] is down"),
        ("SSN 123-45-6789 leaked", "SSN [SSN] leaked"),
        ("Call 555-123-4567 today", "Call [PHONE] today"),
    ],
)
def test_anonymize_replaces_pii(raw, expected):
    result = preprocess_text(raw, PreprocessorOptions(anonymize=True))
    assert result.cleaned_text == expected
    assert result.metadata.anonymized is True


def test_lower_case_and_special_chars_options():
    options = PreprocessorOptions(to_lower_case=True, remove_special_chars=True)
    assert preprocess_text("Hello #World @ 2024!", options).cleaned_text == "hello world  2024!"


def test_truncate_text_cuts_at_word_boundary():
    assert truncate_text("hello world foo", 8) == "hello..."
    assert truncate_text("short", 10) == "short"
    assert truncate_text("abcdefghij", 4) == "abcd..."


def test_default_max_length_applies():
    result = normalize("word " * 5000)
    assert result.cleaned_text.endswith("...")
    assert len(result.cleaned_text) <= 10003


def test_preprocess_batch_reports_duplicates():
    results, unique_hashes, duplicates = preprocess_batch(["a b", "a  b", "c", " c "])
    assert len(results) == 4
    assert len(unique_hashes) == 2
    assert duplicates == {1: 0, 3: 2}
