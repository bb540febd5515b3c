"""Tests for utility functions.

Tests for: chunk_children, split_string, redact, slugify.
"""

import string

import pytest
from hypothesis import given
from hypothesis import strategies as st

from notiondocs.utils.chunk import chunk_children
from notiondocs.utils.redact import redact
from notiondocs.utils.slug import slugify
from notiondocs.utils.text_split import split_string

# =========================================================================
# chunk_children tests
# =========================================================================

class TestChunkChildren:
    """Tests for chunk_children utility."""

    def test_empty_list(self):
        assert chunk_children([]) == []

    def test_under_limit(self):
        blocks = [{"type": "paragraph"}] * 50
        result = chunk_children(blocks)
        assert len(result) == 1
        assert len(result[0]) == 50

    def test_at_limit(self):
        blocks = [{"type": "paragraph"}] * 100
        assert [len(c) for c in chunk_children(blocks)] == [100]

    def test_over_limit(self):
        blocks = [{"type": "paragraph"}] * 250
        assert [len(c) for c in chunk_children(blocks)] == [100, 100, 50]

    def test_custom_size(self):
        blocks = [{"type": "paragraph"}] * 10
        assert [len(c) for c in chunk_children(blocks, size=3)] == [3, 3, 3, 1]

    def test_order_preserved(self):
        blocks = [{"type": "paragraph", "n": i} for i in range(7)]
        chunks = chunk_children(blocks, size=3)
        assert [b["n"] for chunk in chunks for b in chunk] == list(range(7))

    def test_zero_size_raises(self):
        with pytest.raises(ValueError, match="size"):
            chunk_children([{"type": "divider"}], size=0)

    @given(
        blocks=st.lists(st.fixed_dictionaries({"type": st.text(min_size=1, max_size=10)}), max_size=300),
        size=st.integers(min_value=1, max_value=120),
    )
    def test_chunks_concatenate_to_input(self, blocks, size):
        chunks = chunk_children(blocks, size)
        assert [b for chunk in chunks for b in chunk] == blocks
        assert all(1 <= len(chunk) <= size for chunk in chunks)


# =========================================================================
# split_string tests
# =========================================================================

class TestSplitString:
    def test_empty_string(self):
        assert split_string("") == []

    def test_under_limit(self):
        assert split_string("hello") == ["hello"]

    def test_exact_limit(self):
        assert split_string("a" * 2000) == ["a" * 2000]

    def test_over_limit(self):
        parts = split_string("a" * 4001)
        assert [len(p) for p in parts] == [2000, 2000, 1]

    def test_custom_limit(self):
        assert split_string("hello world", 5) == ["hello", " worl", "d"]

    def test_multibyte_characters_not_cut(self):
        text = "\U0001f600" * 5
        parts = split_string(text, 2)
        assert parts == ["\U0001f600" * 2, "\U0001f600" * 2, "\U0001f600"]

    def test_invalid_limit(self):
        with pytest.raises(ValueError, match="limit"):
            split_string("abc", 0)

    @given(text=st.text(max_size=3000), limit=st.integers(min_value=1, max_value=500))
    def test_parts_rejoin(self, text, limit):
        parts = split_string(text, limit)
        assert "".join(parts) == text
        assert all(1 <= len(p) <= limit for p in parts)


# =========================================================================
# redact tests
# =========================================================================

class TestRedact:
    def test_bearer_header_masked(self):
        assert redact({"Authorization": "Bearer ntn_abc123"}) == {
            "Authorization": "Bearer <redacted>",
        }

    def test_token_replaced_in_nested_strings(self):
        payload = {"children": [{"note": "key is ntn_secret9999"}]}
        result = redact(payload, token="ntn_secret9999")
        assert "ntn_secret9999" not in str(result)
        assert result["children"][0]["note"] == "key is <redacted:...9999>"

    def test_non_string_sensitive_value_masked(self):
        assert redact({"api_key": 12345}) == {"api_key": "<redacted>"}

    def test_long_text_truncated(self):
        result = redact({"content": "x" * 300})
        assert result["content"] == "x" * 200 + "...<300 chars>"

    def test_input_not_mutated(self):
        payload = {"Authorization": "Bearer abc", "body": {"text": "hi"}}
        redact(payload)
        assert payload == {"Authorization": "Bearer abc", "body": {"text": "hi"}}

    def test_ordinary_values_untouched(self):
        payload = {"page_size": 100, "archived": True, "title": "Guide"}
        assert redact(payload) == payload


# =========================================================================
# slugify tests
# =========================================================================

class TestSlugify:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Getting Started", "getting-started"),
            ("  Getting Started: the *basics*!  ", "getting-started-the-basics"),
            ("API v2 -- Overview", "api-v2-overview"),
            ("snake_case stays", "snake_case-stays"),
            ("!!!", ""),
            ("", ""),
        ],
    )
    def test_examples(self, text, expected):
        assert slugify(text) == expected

    @given(st.text(alphabet=string.ascii_letters + string.digits + " -_!?.:*", max_size=80))
    def test_slug_shape(self, text):
        slug = slugify(text)
        assert all(c in string.ascii_lowercase + string.digits + "-_" for c in slug)
        assert "--" not in slug
        assert not slug.startswith("-")
        assert not slug.endswith("-")
        assert slugify(slug) == slug
