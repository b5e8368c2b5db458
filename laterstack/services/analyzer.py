"""Relevance analysis of saved articles using Claude."""

import json
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field

from anthropic import AsyncAnthropic
from anthropic.types import TextBlock

from laterstack.config import get_settings
from laterstack.services.usage import log_usage

logger = logging.getLogger(__name__)

# Upstream token limits: only this prefix of the article is sent
MAX_CONTENT_LENGTH = 15000

MAX_TOPICS = 5
MAX_TOPIC_WORDS = 2
MAX_TOPIC_LENGTH = 50
MAX_REASONING_LENGTH = 500

FALLBACK_MIN_WORD_LENGTH = 5
FALLBACK_REASONING = "AI analysis unavailable. Topics extracted from word frequency."

_TOPIC_GUIDELINES = """Topic Guidelines:
- Use ONLY 1-2 words per topic (e.g., "React", "Machine Learning", "TypeScript", "API Design")
- Be objective and specific
- Avoid lengthy phrases or full sentences"""

_RESPONSE_FORMAT = """Respond with ONLY a JSON object (no markdown, no extra text):
{{"topics": ["<topic>", "<topic>", "<topic>"], "relevanceScore": <number between 0 and 1>, "reasoning": "<1-2 sentence explanation of relevance>"}}"""

_PREFERENCES_PROMPT = (
    """Analyze this article and extract 3-5 key topics. Each topic MUST be concise, using only 1-2 words maximum.
Calculate how relevant this article is to the user based on their interests and goals.

User's Interests: {interests}
User's Goals: {goals}

Article Content:
{content}

"""
    + _TOPIC_GUIDELINES
    + """

Relevance Score Guidelines:
- 0.8-1.0: Highly relevant, directly related to interests
- 0.5-0.79: Moderately relevant, tangentially related
- 0.0-0.49: Less relevant, little connection

"""
    + _RESPONSE_FORMAT
)

_NO_PREFERENCES_PROMPT = (
    """Analyze this article and extract 3-5 key topics. Each topic MUST be concise, using only 1-2 words maximum.
Set relevance score to 0 since the user hasn't specified interests yet.

Article Content:
{content}

"""
    + _TOPIC_GUIDELINES
    + """

"""
    + _RESPONSE_FORMAT
)


class AnalysisFormatError(ValueError):
    """The scoring model returned something other than the expected structure."""


@dataclass
class ArticleAnalysis:
    """Topics, relevance and rationale for one article."""

    topics: list[str] = field(default_factory=list)
    relevance_score: float = 0.0
    reasoning: str = ""
    used_fallback: bool = False


def has_preferences(interests: list[str], goals: str) -> bool:
    return bool(interests) or bool(goals and goals.strip())


def sanitize_topic(topic: str) -> str:
    """Keep at most two words and fifty characters."""
    words = topic.split()
    return " ".join(words[:MAX_TOPIC_WORDS])[:MAX_TOPIC_LENGTH].strip()


def sanitize_analysis(analysis: ArticleAnalysis) -> ArticleAnalysis:
    """Enforce output bounds regardless of where the analysis came from."""
    topics = [t for t in (sanitize_topic(str(t)) for t in analysis.topics) if t]
    score = analysis.relevance_score
    if not math.isfinite(score):
        score = 0.0
    return ArticleAnalysis(
        topics=topics[:MAX_TOPICS],
        relevance_score=min(1.0, max(0.0, float(score))),
        reasoning=analysis.reasoning[:MAX_REASONING_LENGTH],
        used_fallback=analysis.used_fallback,
    )


def fallback_analysis(content: str) -> ArticleAnalysis:
    """Word-frequency topics with a zero score, used when the model is unavailable."""
    words = re.sub(r"[^\w\s]", " ", content.lower()).split()
    counts = Counter(w for w in words if len(w) >= FALLBACK_MIN_WORD_LENGTH)
    topics = [word[0].upper() + word[1:] for word, _ in counts.most_common(MAX_TOPICS)]
    return ArticleAnalysis(
        topics=topics,
        relevance_score=0.0,
        reasoning=FALLBACK_REASONING,
        used_fallback=True,
    )


def parse_analysis_response(text: str) -> ArticleAnalysis:
    """Parse the model's JSON reply, raising AnalysisFormatError on any deviation."""
    text = text.strip()
    # Remove any markdown code blocks if present
    if text.startswith("```"):
        text = re.sub(r"```(?:json)?\n?", "", text)
        text = text.strip()

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisFormatError(f"Response is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise AnalysisFormatError("Response is not a JSON object")

    topics = data.get("topics")
    if not isinstance(topics, list) or not all(isinstance(t, str) for t in topics):
        raise AnalysisFormatError("topics must be a list of strings")

    score = data.get("relevanceScore")
    if isinstance(score, bool) or not isinstance(score, int | float):
        raise AnalysisFormatError("relevanceScore must be a number")
    if not math.isfinite(score) or not 0.0 <= score <= 1.0:
        raise AnalysisFormatError(f"relevanceScore out of range: {score}")

    reasoning = data.get("reasoning")
    if not isinstance(reasoning, str):
        raise AnalysisFormatError("reasoning must be a string")

    return ArticleAnalysis(topics=topics, relevance_score=float(score), reasoning=reasoning)


class RelevanceAnalyzer:
    """Scores articles against a user's interests and goals."""

    def __init__(self, client: AsyncAnthropic | None = None, model: str | None = None):
        settings = get_settings()
        self._client = client or AsyncAnthropic(api_key=settings.anthropic_api_key)
        self._model = model or settings.analyzer_model

    async def analyze(
        self,
        content: str,
        interests: list[str],
        goals: str,
        user_id: int | None = None,
    ) -> ArticleAnalysis:
        """Analyze an article. Never raises: failures produce fallback_analysis()."""
        try:
            analysis = await self._analyze_with_model(content, interests, goals, user_id)
        except Exception as e:
            logger.error("AI analysis failed, using word-frequency fallback: %s", e)
            try:
                analysis = fallback_analysis(content or "")
            except Exception:
                logger.exception("Fallback analysis failed")
                analysis = ArticleAnalysis(reasoning=FALLBACK_REASONING, used_fallback=True)

        if not has_preferences(interests, goals):
            analysis.relevance_score = 0.0
        return sanitize_analysis(analysis)

    async def _analyze_with_model(
        self,
        content: str,
        interests: list[str],
        goals: str,
        user_id: int | None,
    ) -> ArticleAnalysis:
        truncated = content[:MAX_CONTENT_LENGTH]
        if has_preferences(interests, goals):
            prompt = _PREFERENCES_PROMPT.format(
                interests=", ".join(interests) or "None",
                goals=goals or "None",
                content=truncated,
            )
        else:
            prompt = _NO_PREFERENCES_PROMPT.format(content=truncated)

        response = await self._client.messages.create(
            model=self._model,
            max_tokens=400,
            temperature=0.3,
            messages=[{"role": "user", "content": prompt}],
        )

        await log_usage(
            service="analyzer",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            user_id=user_id,
        )

        first_block = response.content[0]
        if not isinstance(first_block, TextBlock):
            raise AnalysisFormatError(f"Unexpected content block: {first_block.type}")
        return parse_analysis_response(first_block.text)


# Singleton instance
_analyzer: RelevanceAnalyzer | None = None


def get_relevance_analyzer() -> RelevanceAnalyzer:
    """Get or create the relevance analyzer singleton."""
    global _analyzer
    if _analyzer is None:
        _analyzer = RelevanceAnalyzer()
    return _analyzer
