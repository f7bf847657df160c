from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol, cast

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from backend.app.models.blog_contracts import (
    DEFAULT_AUTHOR,
    Article,
    GroundingSource,
    default_image_url,
)
from backend.app.repositories.common import EPOCH_MILLIS, utc_now_iso
from backend.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("global_gist.content")

KEYWORD_CONTENT_WINDOW = 1000
MAX_KEYWORDS = 5

_WHITESPACE_RUN = re.compile(r"\s+")

_BLOG_POST_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "posts": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING"},
                    "summary": {"type": "STRING"},
                    "content": {"type": "STRING"},
                },
                "required": ["title", "summary", "content"],
            },
        }
    },
    "required": ["posts"],
}

_VIDEO_ID_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={"videoId": types.Schema(type=types.Type.STRING)},
    required=["videoId"],
)

_KEYWORD_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "tags": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
        )
    },
    required=["tags"],
)


class ContentServiceError(RuntimeError):
    def __init__(self, message: str, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class ContentService(Protocol):
    def generate_posts(
        self,
        topic: str,
        *,
        count: int,
        exclude_title: str | None = None,
    ) -> list[Article]:
        ...

    def find_youtube_video_id(self, query: str) -> str | None:
        ...

    def extract_keywords(self, content: str) -> list[str]:
        ...


class GeminiContentService:
    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        timeout_seconds: float,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout_seconds = max(1.0, float(timeout_seconds))
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()
        self._client: genai.Client | None = None

    @property
    def model(self) -> str:
        return self._model

    def generate_posts(
        self,
        topic: str,
        *,
        count: int,
        exclude_title: str | None = None,
    ) -> list[Article]:
        prompt = build_generation_prompt(topic, count=count, exclude_title=exclude_title)
        response = self._generate(
            prompt,
            operation="generate_posts",
            config=types.GenerateContentConfig(
                tools=[types.Tool(google_search=types.GoogleSearch())],
            ),
        )
        payload = _parse_json_object(response.text)
        raw_posts = payload.get("posts")
        if not isinstance(raw_posts, list):
            raise ContentServiceError("Generated content did not contain a posts list.")

        sources = _grounding_sources(response)
        created_at = utc_now_iso()
        millis = EPOCH_MILLIS.next()
        topic_slug = _WHITESPACE_RUN.sub("-", topic)

        articles: list[Article] = []
        for index, raw_post in enumerate(cast(list[object], raw_posts)):
            if not isinstance(raw_post, dict):
                continue
            post = cast(dict[str, Any], raw_post)
            title = str(post.get("title") or "").strip()
            if not title:
                continue
            articles.append(
                Article(
                    id=f"{topic_slug}-{index}-{millis}",
                    topic=topic,
                    title=title,
                    summary=str(post.get("summary") or ""),
                    content=str(post.get("content") or ""),
                    image_url=default_image_url(title),
                    sources=list(sources),
                    author=DEFAULT_AUTHOR,
                    created_at=created_at,
                )
            )

        self._telemetry.emit(
            "content.generate.finish",
            topic=topic,
            requested=count,
            generated=len(articles),
            sources=len(sources),
        )
        return articles

    def find_youtube_video_id(self, query: str) -> str | None:
        response = self._generate(
            f'Find a YouTube video ID for: "{query}"',
            operation="find_youtube_video_id",
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=_VIDEO_ID_SCHEMA,
            ),
        )
        payload = _parse_json_object(response.text)
        video_id = payload.get("videoId")
        if isinstance(video_id, str) and video_id.strip():
            return video_id.strip()
        return None

    def extract_keywords(self, content: str) -> list[str]:
        excerpt = content[:KEYWORD_CONTENT_WINDOW]
        response = self._generate(
            f'Extract 3-5 keywords from: "{excerpt}..."',
            operation="extract_keywords",
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=_KEYWORD_SCHEMA,
            ),
        )
        payload = _parse_json_object(response.text)
        raw_tags = payload.get("tags")
        if not isinstance(raw_tags, list):
            return []
        keywords: list[str] = []
        for tag in cast(list[object], raw_tags):
            if isinstance(tag, str) and tag.strip():
                keywords.append(tag.strip())
        return keywords[:MAX_KEYWORDS]

    def _generate(
        self,
        prompt: str,
        *,
        operation: str,
        config: types.GenerateContentConfig,
    ) -> types.GenerateContentResponse:
        client = self._get_client()
        try:
            return client.models.generate_content(
                model=self._model,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as exc:
            LOGGER.warning(
                "gemini request failed operation=%s code=%s",
                operation,
                exc.code,
            )
            self._telemetry.emit(
                "content.request.error",
                operation=operation,
                status_code=exc.code,
            )
            raise ContentServiceError(
                f"Content generation failed: {exc.message or exc.status or exc.code}",
                retryable=exc.code in {429, 500, 503},
            ) from exc
        except httpx.HTTPError as exc:
            LOGGER.warning("gemini transport failure operation=%s error=%s", operation, exc)
            self._telemetry.emit("content.request.error", operation=operation, status_code=None)
            raise ContentServiceError(
                f"Content service unreachable: {exc}", retryable=True
            ) from exc

    def _get_client(self) -> genai.Client:
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise ContentServiceError("GLOBAL_GIST_GEMINI_API_KEY is not configured.")
        self._client = genai.Client(
            api_key=self._api_key,
            http_options=types.HttpOptions(timeout=int(self._timeout_seconds * 1000)),
        )
        return self._client


def build_generation_prompt(topic: str, *, count: int, exclude_title: str | None = None) -> str:
    prompt = (
        f'Generate {count} high-quality, comprehensive blog posts about "{topic}". '
        "The articles should be written in a journalistic, factual style. "
        "Each post must be at least 7-9 detailed paragraphs. "
        "Use Google Search for accuracy. Integrate citations like [Source Title]."
    )
    if exclude_title:
        prompt += f' Do NOT generate a post with the title "{exclude_title}".'
    prompt += (
        f" Output a JSON object adhering to this schema: {json.dumps(_BLOG_POST_SCHEMA)}."
        " Ensure all string values are properly escaped."
    )
    return prompt


def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json") :]
    elif cleaned.startswith("```"):
        cleaned = cleaned[len("```") :]
    else:
        return cleaned
    if cleaned.rstrip().endswith("```"):
        cleaned = cleaned.rstrip()[: -len("```")]
    return cleaned.strip()


def _parse_json_object(text: str | None) -> dict[str, Any]:
    if not text:
        raise ContentServiceError("Content service returned an empty response.")
    try:
        parsed = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise ContentServiceError(f"Content service returned invalid JSON: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise ContentServiceError("Content service returned a non-object JSON payload.")
    return cast(dict[str, Any], parsed)


def _grounding_sources(response: types.GenerateContentResponse) -> list[GroundingSource]:
    candidates = response.candidates or []
    if not candidates:
        return []
    metadata = candidates[0].grounding_metadata
    if metadata is None or not metadata.grounding_chunks:
        return []

    sources: list[GroundingSource] = []
    for chunk in metadata.grounding_chunks:
        web = chunk.web
        if web is None or not web.uri:
            continue
        sources.append(GroundingSource(title=web.title or "", uri=web.uri))
    return sources
