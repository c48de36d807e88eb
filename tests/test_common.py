import pytest

from markstash.services.common import clean_tags, clean_text, email_prefix
from markstash.services.ownership import parse_id


def test_clean_tags_preserves_first_seen_order():
    assert clean_tags(["b", " a ", "b", "", "C"]) == ["b", "a", "C"]


def test_clean_tags_accepts_delimited_strings():
    assert clean_tags("python; flask, ,web") == ["python", "flask", "web"]


def test_clean_tags_missing_is_empty():
    assert clean_tags(None) == []
    assert clean_tags([]) == []


@pytest.mark.parametrize("raw", [{"a": 1}, 5, ["ok", 3]])
def test_clean_tags_rejects_non_strings(raw):
    with pytest.raises(ValueError):
        clean_tags(raw)


def test_clean_text():
    assert clean_text("  hi ") == "hi"
    assert clean_text("   ") is None
    assert clean_text(None) is None


def test_email_prefix():
    assert email_prefix("alice@example.com") == "alice"


def test_parse_id():
    assert parse_id("12") == 12
    assert parse_id(7) == 7
    assert parse_id("abc") is None
    assert parse_id(None) is None
    assert parse_id(True) is None
    assert parse_id(2.0) == 2
    assert parse_id(1.9) is None
    assert parse_id("1.9") is None
    assert parse_id(float("nan")) is None
