"""YouTube video lookup for a study topic.

Scrapes the public search results page (the ytInitialData blob embedded in
the HTML). Any failure degrades to a single search-results link.
"""
from __future__ import annotations

import json
import logging
import re
from urllib.parse import quote_plus

import httpx

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.youtube.com/results"
MAX_VIDEOS = 6
TIMEOUT_SECONDS = 10.0
USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36"

_INITIAL_DATA_RE = re.compile(r"(?:var ytInitialData|window\[\"ytInitialData\"\])\s*=\s*(\{.+?\});\s*</script>", re.S)


def _text(node) -> str:
    """Flatten YouTube's {"runs": [...]} / {"simpleText": ...} text nodes."""
    if not node:
        return ""
    if "simpleText" in node:
        return node["simpleText"]
    return "".join(run.get("text", "") for run in node.get("runs", []))


def _walk_video_renderers(node):
    if isinstance(node, dict):
        if "videoRenderer" in node:
            yield node["videoRenderer"]
        for value in node.values():
            yield from _walk_video_renderers(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk_video_renderers(item)


def parse_search_page(html: str, limit: int = MAX_VIDEOS) -> list[dict]:
    match = _INITIAL_DATA_RE.search(html)
    if not match:
        raise ValueError("ytInitialData not found in search page")
    data = json.loads(match.group(1))

    videos = []
    for renderer in _walk_video_renderers(data):
        video_id = renderer.get("videoId")
        if not video_id:
            continue
        title = _text(renderer.get("title"))
        thumbnails = (renderer.get("thumbnail") or {}).get("thumbnails") or []
        snippets = renderer.get("detailedMetadataSnippets") or []
        description = _text(snippets[0].get("snippetText")) if snippets else ""
        views = _text(renderer.get("viewCountText"))
        videos.append({
            "title": title,
            "url": f"https://www.youtube.com/watch?v={video_id}",
            "type": "video",
            "description": description or f"Watch {title} on YouTube.",
            "thumbnail": thumbnails[-1].get("url") if thumbnails else None,
            "duration": _text(renderer.get("lengthText")) or None,
            "views": views or None,
        })
        if len(videos) >= limit:
            break
    return videos


def fallback_resources(topic: str, subject: str) -> list[dict]:
    query = quote_plus(f"{topic} {subject}")
    return [{
        "title": f"YouTube Search: {topic}",
        "url": f"https://www.youtube.com/results?search_query={query}+tutorial",
        "type": "video",
        "description": f"Search results for {topic} on YouTube.",
    }]


def find_videos(topic: str, subject: str, client: httpx.Client | None = None) -> list[dict]:
    """Up to MAX_VIDEOS tutorial videos for the topic, or the search-link fallback."""
    query = f"{topic} {subject} tutorial".strip()
    logger.info("Searching YouTube for: %s", query)

    own_client = client is None
    if own_client:
        client = httpx.Client(
            timeout=httpx.Timeout(TIMEOUT_SECONDS, connect=5.0),
            headers={"User-Agent": USER_AGENT, "Accept-Language": "en-US,en;q=0.9"},
            follow_redirects=True,
        )
    try:
        response = client.get(SEARCH_URL, params={"search_query": query})
        response.raise_for_status()
        videos = parse_search_page(response.text)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("YouTube search failed for %r: %s", query, exc)
        return fallback_resources(topic, subject)
    finally:
        if own_client:
            client.close()

    if not videos:
        return fallback_resources(topic, subject)
    logger.info("Found %d videos", len(videos))
    return videos
