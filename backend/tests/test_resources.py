"""Tests for the YouTube resource lookup."""

import json

import httpx
import pytest

from learning import resources


def search_page(*video_ids):
    contents = [{"videoRenderer": {
        "videoId": vid,
        "title": {"runs": [{"text": "Limits explained "}, {"text": vid}]},
        "thumbnail": {"thumbnails": [{"url": f"https://i.ytimg.com/{vid}/small.jpg"},
                                     {"url": f"https://i.ytimg.com/{vid}/big.jpg"}]},
        "lengthText": {"simpleText": "12:34"},
        "viewCountText": {"simpleText": "1,024 views"},
    }} for vid in video_ids]
    contents.insert(0, {"adSlotRenderer": {"id": "ignored"}})
    data = {"contents": {"twoColumnSearchResultsRenderer": {"primaryContents": {
        "sectionListRenderer": {"contents": [{"itemSectionRenderer": {"contents": contents}}]}}}}}
    return f"<html><script>var ytInitialData = {json.dumps(data)};</script></html>"


def mock_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestParse:
    def test_parse_videos(self):
        videos = resources.parse_search_page(search_page("abc", "def"))
        assert [v["url"] for v in videos] == [
            "https://www.youtube.com/watch?v=abc", "https://www.youtube.com/watch?v=def",
        ]
        first = videos[0]
        assert first["title"] == "Limits explained abc"
        assert first["thumbnail"] == "https://i.ytimg.com/abc/big.jpg"
        assert first["duration"] == "12:34"
        assert first["views"] == "1,024 views"
        assert first["description"] == "Watch Limits explained abc on YouTube."

    def test_limit(self):
        ids = [f"v{i}" for i in range(10)]
        assert len(resources.parse_search_page(search_page(*ids))) == resources.MAX_VIDEOS

    def test_missing_initial_data(self):
        with pytest.raises(ValueError):
            resources.parse_search_page("<html>consent wall</html>")


class TestFindVideos:
    def test_success(self):
        seen = {}

        def handler(request):
            seen["query"] = request.url.params["search_query"]
            return httpx.Response(200, text=search_page("abc"))

        videos = resources.find_videos("Limits", "Calculus", client=mock_client(handler))
        assert seen["query"] == "Limits Calculus tutorial"
        assert videos[0]["url"].endswith("abc")

    @pytest.mark.parametrize("handler", [
        lambda request: httpx.Response(500),
        lambda request: httpx.Response(200, text="<html>nothing here</html>"),
        lambda request: httpx.Response(200, text=search_page()),
    ])
    def test_fallback_link(self, handler):
        videos = resources.find_videos("Limits", "Calculus", client=mock_client(handler))
        assert len(videos) == 1
        assert videos[0]["title"] == "YouTube Search: Limits"
        assert "search_query=Limits+Calculus+tutorial" in videos[0]["url"]

    def test_network_error_falls_back(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        videos = resources.find_videos("Limits", "Calculus", client=mock_client(handler))
        assert videos[0]["type"] == "video"
        assert "youtube.com/results" in videos[0]["url"]


@pytest.mark.asyncio
class TestResourcesRoute:
    async def test_prefers_subtopic(self, auth_client, monkeypatch):
        calls = []
        monkeypatch.setattr(resources, "find_videos", lambda topic, subject: calls.append((topic, subject)) or [])
        resp = await auth_client.post("/api/resources", json={
            "topic": "Calculus", "subtopic": "Chain rule", "subject": " Calculus ",
        })
        assert resp.json() == {"resources": []}
        assert calls == [("Chain rule", "Calculus")]

    async def test_empty_topic(self, auth_client, monkeypatch):
        monkeypatch.setattr(resources, "find_videos", lambda *a: pytest.fail("should not search"))
        resp = await auth_client.post("/api/resources", json={"topic": "  "})
        assert resp.json() == {"resources": []}
