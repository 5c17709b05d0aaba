from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from .errors import UpstreamError
from .schemas import SourceAttribution, SourceDocument
from .settings import Settings, settings as default_settings

logger = logging.getLogger("smartstudy.wiki")

SOURCE_NAME = "Wikipedia"
ARTICLE_BASE_URL = "https://en.wikipedia.org/wiki/"
DEFAULT_LICENSE_URL = "https://creativecommons.org/licenses/by-sa/3.0/"


def encode_topic(topic: str) -> str:
    # Same reserved set as JavaScript's encodeURIComponent.
    return quote((topic or "").strip(), safe="!~*'()")


def _nested(data: Dict[str, Any], *keys: str) -> Optional[Any]:
    cur: Any = data
    for k in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(k)
    return cur


def build_source_document(topic: str, data: Dict[str, Any]) -> Optional[SourceDocument]:
    """
    Normalize a summary payload. Disambiguation pages and pages without an
    extract are treated the same as a missing page.
    """
    extract = data.get("extract")
    if data.get("type") == "disambiguation" or not isinstance(extract, str) or not extract.strip():
        return None

    page_url = _nested(data, "content_urls", "desktop", "page") or None
    license_url = _nested(data, "license", "url") or DEFAULT_LICENSE_URL

    return SourceDocument(
        title=data.get("title") or topic,
        description=data.get("description") or "",
        extract=extract,
        content_url=page_url,
        attribution=SourceAttribution(
            source=SOURCE_NAME,
            url=page_url or f"{ARTICLE_BASE_URL}{encode_topic(topic)}",
            license=license_url,
            retrieved_at=datetime.now(timezone.utc),
        ),
    )


async def fetch_topic_summary(
    topic: str,
    client: Optional[httpx.AsyncClient] = None,
    settings: Optional[Settings] = None,
) -> Optional[SourceDocument]:
    """
    Returns the SourceDocument for `topic`, or None when the encyclopedia has
    nothing usable for it. Raises UpstreamError for any other failure.
    """
    cfg = settings or default_settings
    url = f"{cfg.wiki_summary_url}{encode_topic(topic)}"
    headers = {
        "Accept": "application/json",
        "User-Agent": cfg.wiki_user_agent,
    }

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=httpx.Timeout(cfg.request_timeout))
    try:
        response = await http.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.error("wiki_request_failed topic=%r error=%s", topic, e)
        raise UpstreamError(f"Wikipedia request failed: {e}") from e
    finally:
        if owns_client:
            await http.aclose()

    if response.status_code == 404:
        logger.info("wiki_not_found topic=%r", topic)
        return None

    if not response.is_success:
        logger.error("wiki_bad_status topic=%r status=%d", topic, response.status_code)
        raise UpstreamError(
            f"Wikipedia request failed with status {response.status_code}",
            status_code=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise UpstreamError("Wikipedia returned a non-JSON summary.", status_code=response.status_code) from e

    if not isinstance(data, dict):
        raise UpstreamError("Wikipedia returned an unexpected summary shape.", status_code=response.status_code)

    doc = build_source_document(topic, data)
    if doc is None:
        logger.info("wiki_no_content topic=%r type=%s", topic, data.get("type"))
        return None

    logger.info("wiki_fetched topic=%r title=%r sentences=%d", topic, doc.title, len(doc.sentences))
    return doc
