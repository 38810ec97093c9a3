from unittest.mock import AsyncMock, MagicMock

import pytest

from mojo.errors import ProviderError, ProviderErrorKind
from mojo.fanout import FanOutExecutor
from mojo.tools.research_tools import AcademicSearchTool, RetrieveTool, YouTubeSearchTool


def _exa() -> MagicMock:
    exa = MagicMock()
    exa.enabled = True
    return exa


@pytest.mark.asyncio
async def test_academic_search_dedupes_and_cleans_papers():
    exa = _exa()
    exa.search_and_contents = AsyncMock(
        return_value=[
            {"url": "https://arxiv.test/1", "title": "Attention [pdf]", "summary": "Summary: Transformers."},
            {"url": "https://arxiv.test/1", "title": "Attention again", "summary": "dup"},
            {"url": "https://arxiv.test/2", "title": "No summary", "summary": ""},
            {"url": "https://arxiv.test/3", "title": "BERT", "summary": "Bidirectional."},
        ]
    )

    result = await AcademicSearchTool(exa).run(query="transformers")

    assert [(p["title"], p["summary"]) for p in result["results"]] == [
        ("Attention", "Transformers."),
        ("BERT", "Bidirectional."),
    ]
    exa.search_and_contents.assert_awaited_once_with(
        "transformers", num_results=20, category="research paper", summary_query="Abstract of the Paper"
    )


@pytest.mark.asyncio
async def test_academic_search_caps_results():
    exa = _exa()
    exa.search_and_contents = AsyncMock(
        return_value=[{"url": f"https://arxiv.test/{i}", "title": str(i), "summary": "s"} for i in range(15)]
    )
    result = await AcademicSearchTool(exa).run(query="q")
    assert len(result["results"]) == 10


def _details(captions_error: bool = False, all_fail: bool = False) -> MagicMock:
    details = MagicMock()
    details.enabled = True
    down = ProviderError(ProviderErrorKind.UNAVAILABLE, "down", provider="youtube-details")
    details.video_data = AsyncMock(side_effect=down) if all_fail else AsyncMock(return_value={"title": "Video"})
    details.video_captions = AsyncMock(side_effect=down) if captions_error or all_fail else AsyncMock(return_value="hi")
    details.video_timestamps = AsyncMock(side_effect=down) if all_fail else AsyncMock(return_value=["0:00 Intro"])
    return details


@pytest.mark.asyncio
async def test_youtube_search_enriches_each_video():
    exa = _exa()
    exa.search = AsyncMock(
        return_value=[
            {"url": "https://www.youtube.com/watch?v=abc123"},
            {"url": "https://example.test/not-a-video"},
            {"url": "https://youtu.be/xyz789"},
        ]
    )
    details = _details(captions_error=True)

    result = await YouTubeSearchTool(exa, details, FanOutExecutor()).run(query="asyncio", no_of_results=3)

    assert [v["video_id"] for v in result["results"]] == ["abc123", "xyz789"]
    first = result["results"][0]
    assert first["details"] == {"title": "Video"}
    assert first["timestamps"] == ["0:00 Intro"]
    assert "captions" not in first
    exa.search.assert_awaited_once_with(
        "asyncio", search_type="keyword", num_results=3, include_domains=["youtube.com"]
    )


@pytest.mark.asyncio
async def test_youtube_search_keeps_bare_video_when_enrichment_fails():
    exa = _exa()
    exa.search = AsyncMock(return_value=[{"url": "https://youtu.be/xyz789"}])

    result = await YouTubeSearchTool(exa, _details(all_fail=True), FanOutExecutor()).run(query="q")

    assert result["results"] == [{"video_id": "xyz789", "url": "https://youtu.be/xyz789"}]


@pytest.mark.asyncio
async def test_retrieve_returns_markdown_page():
    firecrawl = MagicMock()
    firecrawl.enabled = True
    firecrawl.scrape = AsyncMock(
        return_value={
            "markdown": "# Hello",
            "metadata": {"title": "Hello", "sourceURL": "https://a.test/", "language": "en"},
        }
    )

    result = await RetrieveTool(firecrawl).run(url=" https://a.test ")

    firecrawl.scrape.assert_awaited_once_with("https://a.test")
    assert result["results"][0] == {
        "title": "Hello",
        "content": "# Hello",
        "url": "https://a.test/",
        "description": None,
        "language": "en",
    }
