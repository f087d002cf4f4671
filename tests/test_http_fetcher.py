from aiohttp import web

from crawler.http_fetcher import HttpFetcher
from conftest import redirect_chain, respond, streamed


async def test_fetch_returns_status_type_and_body(make_site):
    site = await make_site({"/": respond("<p>hi</p>", content_type="text/html", headers={"X-Test": "1"})})

    async with HttpFetcher() as fetcher:
        result = await fetcher.fetch(site.url("/"))

    assert result.status_code == 200
    assert result.content_type == "text/html"
    assert result.body == b"<p>hi</p>"
    assert result.load_time_ms >= 0
    assert not result.is_transport_failure


async def test_content_type_parameters_are_dropped(make_site):
    async def handler(request):
        return web.Response(body=b"x", headers={"Content-Type": "text/html; charset=ISO-8859-1"})

    site = await make_site({"/": handler})
    async with HttpFetcher() as fetcher:
        result = await fetcher.fetch(site.url("/"))

    assert result.content_type == "text/html"
    assert result.charset.lower() == "iso-8859-1"


async def test_http_errors_are_responses_not_failures(make_site):
    site = await make_site({"/gone": respond("gone", status=410)})

    async with HttpFetcher() as fetcher:
        missing = await fetcher.fetch(site.url("/missing"))
        gone = await fetcher.fetch(site.url("/gone"))

    assert missing.status_code == 404
    assert gone.status_code == 410
    assert gone.error is None


async def test_timeout_is_a_transport_failure(make_site):
    site = await make_site({"/slow": respond("late", delay=1.0)})

    async with HttpFetcher(timeout_s=0.2) as fetcher:
        result = await fetcher.fetch(site.url("/slow"))

    assert result.status_code == 0
    assert result.is_transport_failure
    assert result.error


async def test_redirects_are_followed_within_cap(make_site):
    site = await make_site({"/r/{n}": redirect_chain, "/final": respond("<p>end</p>")})

    async with HttpFetcher(max_redirects=5) as fetcher:
        result = await fetcher.fetch(site.url("/r/3"))

    assert result.status_code == 200
    assert result.final_url == site.url("/final")


async def test_redirect_cap_exceeded_is_a_transport_failure(make_site):
    site = await make_site({"/r/{n}": redirect_chain, "/final": respond("<p>end</p>")})

    async with HttpFetcher(max_redirects=5) as fetcher:
        result = await fetcher.fetch(site.url("/r/8"))

    assert result.status_code == 0
    assert "Redirect" in result.error


async def test_declared_oversized_body_fails(make_site):
    site = await make_site({"/big": respond("x" * 1000, content_type="text/plain")})

    async with HttpFetcher(max_body_bytes=100) as fetcher:
        result = await fetcher.fetch(site.url("/big"))

    assert result.status_code == 0
    assert "ResponseTooLarge" in result.error


async def test_streamed_oversized_body_fails(make_site):
    site = await make_site({"/stream": streamed(chunks=10, chunk_size=50)})

    async with HttpFetcher(max_body_bytes=200) as fetcher:
        result = await fetcher.fetch(site.url("/stream"))

    assert result.status_code == 0


async def test_connection_refused_is_a_transport_failure(make_site):
    site = await make_site({})
    url = site.url("/")
    await site.close()

    async with HttpFetcher(timeout_s=2) as fetcher:
        result = await fetcher.fetch(url)

    assert result.status_code == 0
    assert result.body == b""
