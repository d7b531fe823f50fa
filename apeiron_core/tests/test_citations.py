from apeiron_core.domain.citations import extract_citations, merge_citations
from apeiron_core.domain.models import Citation


def test_extract_nested_url_citation():
    result = extract_citations([{"url_citation": {"url": "https://x.com", "title": "X"}}])
    assert result == [Citation(url="https://x.com", title="X", content=None)]


def test_extract_camel_case_and_flat_entries():
    result = extract_citations(
        [
            {"urlCitation": {"url": "https://a.com", "content": "snippet"}},
            {"type": "url_citation", "url": "https://b.com", "title": "B"},
            {"url_citation": {"title": "no url"}, "url": "https://c.com"},
        ]
    )
    assert [c.url for c in result] == ["https://a.com", "https://b.com", "https://c.com"]
    assert result[0].content == "snippet"
    assert result[1].title == "B"


def test_extract_skips_invalid_entries():
    assert extract_citations(None) == []
    assert extract_citations({"url": "https://x.com"}) == []
    assert extract_citations(["text", 1, {"title": "missing"}, {"url": 5}]) == []


def test_merge_keeps_existing_position_and_appends_new():
    existing = [Citation("https://a.com", "A"), Citation("https://b.com")]
    incoming = [Citation("https://c.com", "C"), Citation("https://b.com", "B"), Citation("https://d.com")]
    merged = merge_citations(existing, incoming)
    assert [c.url for c in merged] == ["https://a.com", "https://b.com", "https://c.com", "https://d.com"]
    assert merged[1].title == "B"


def test_merge_never_overwrites_populated_fields():
    existing = [Citation("https://a.com", title="First", content=None)]
    merged = merge_citations(existing, [Citation("https://a.com", title="Second", content="body")])
    assert merged == [Citation("https://a.com", title="First", content="body")]
    merged = merge_citations(merged, [Citation("https://a.com", title="Third", content="other")])
    assert merged == [Citation("https://a.com", title="First", content="body")]


def test_merge_is_idempotent():
    samples = [
        ([], [Citation("https://a.com", "A")]),
        ([Citation("https://a.com")], [Citation("https://a.com", "A", "x"), Citation("https://b.com")]),
        (
            [Citation("https://a.com", "A"), Citation("https://b.com", None, "b")],
            [Citation("https://b.com", "B", "other"), Citation("https://b.com", "B2"), Citation("https://c.com", "")],
        ),
    ]
    for existing, incoming in samples:
        once = merge_citations(existing, incoming)
        assert merge_citations(once, incoming) == once


def test_merge_does_not_mutate_inputs():
    existing = [Citation("https://a.com")]
    merge_citations(existing, [Citation("https://a.com", "A"), Citation("https://b.com")])
    assert existing == [Citation("https://a.com")]
