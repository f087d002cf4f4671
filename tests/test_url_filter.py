import pytest

from crawler.url_filter import LinkKind, canonical_seed, classify_link

BASE = "https://example.com/docs/index.html"


@pytest.mark.parametrize("href", ["", "   ", "javascript:void(0)", "mailto:a@example.com", "tel:+123", "FTP://example.com/f"])
def test_non_navigable_hrefs_are_rejected(href):
    assert classify_link(href, BASE).kind == LinkKind.REJECT


def test_relative_links_resolve_against_base():
    decision = classify_link("guide.html", BASE)
    assert decision.kind == LinkKind.PAGE
    assert decision.url == "https://example.com/docs/guide.html"


def test_www_prefix_is_ignored_when_comparing_hosts():
    assert classify_link("https://www.example.com/about", BASE).kind == LinkKind.PAGE
    assert classify_link("https://example.com/about", "https://www.example.com/").kind == LinkKind.PAGE


def test_other_hosts_and_subdomains_are_out_of_scope():
    assert classify_link("https://other.com/x", BASE).reason == "external"
    assert classify_link("https://blog.example.com/post", BASE).reason == "external"


def test_scope_url_overrides_base_host():
    decision = classify_link("/page", "https://cdn.example.org/landing", scope_url="https://example.com/")
    assert decision.kind == LinkKind.REJECT


def test_same_page_anchors_are_rejected():
    assert classify_link("#section", BASE).reason == "anchor"
    assert classify_link("https://example.com/docs/index.html#top", BASE).reason == "anchor"


def test_fragment_on_other_page_is_stripped():
    decision = classify_link("/faq#shipping", BASE)
    assert decision.kind == LinkKind.PAGE
    assert decision.url == "https://example.com/faq"


def test_pdf_links_are_classified_separately():
    decision = classify_link("/files/Report.PDF#page=2", BASE)
    assert decision.kind == LinkKind.PDF
    assert decision.url == "https://example.com/files/Report.PDF"


@pytest.mark.parametrize("href", ["/logo.png", "/a/b.zip", "/v.mp4", "/sheet.xlsx", "/app.js", "/img/x.JPG"])
def test_non_page_extensions_are_rejected(href):
    assert classify_link(href, BASE).reason == "extension"


def test_query_strings_are_kept():
    decision = classify_link("/search?q=shoes&page=2", BASE)
    assert decision.url == "https://example.com/search?q=shoes&page=2"


def test_malformed_urls_are_rejected():
    assert classify_link("http://[::1", BASE).kind == LinkKind.REJECT


@pytest.mark.parametrize(
    "seed, expected",
    [
        ("https://example.com", "https://example.com/"),
        ("https://example.com#top", "https://example.com/"),
        ("https://example.com/docs?x=1#s", "https://example.com/docs?x=1"),
        ("https://example.com/", "https://example.com/"),
    ],
)
def test_canonical_seed(seed, expected):
    assert canonical_seed(seed) == expected


def test_bare_origin_seed_equals_its_root_link():
    seed = "https://example.com"
    assert classify_link("/", seed).url == canonical_seed(seed)
