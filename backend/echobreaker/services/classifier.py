"""
Stance classification adapters.

A classifier turns a collected video into raw stance probabilities. Its
output is untrusted: ingestion validates it before anything is aggregated.
Two backends are provided, an OpenAI chat model and a local zero-shot
transformers pipeline.
"""
from __future__ import annotations

import asyncio
import json
import logging
from functools import lru_cache
from typing import Dict, Mapping, Optional, Protocol

from openai import AsyncOpenAI

from echobreaker.config import Settings, settings as default_settings
from echobreaker.errors import ClassificationFailure
from echobreaker.models import CENTRIST, CONSERVATIVE, NON_POLITICAL, PROGRESSIVE, VideoRecord

logger = logging.getLogger(__name__)


class StanceClassifier(Protocol):
    """Anything that can produce stance probabilities for a video."""

    async def classify(self, video: VideoRecord) -> Mapping[str, float]:
        ...


SYSTEM_PROMPT = (
    "You are a media bias analyst. Classify the political stance of a YouTube video "
    "from its metadata. Be nuanced: most entertainment, tech, gaming and lifestyle "
    "content is non-political. Only assign political stances when there is clear "
    "political discourse or bias."
)


def describe_video(video: VideoRecord) -> str:
    """One-line description of a video for classifier prompts."""
    tags = ", ".join(video.tags[:10]) if video.tags else "none"
    return (
        f'Title: "{video.title}" | Channel: "{video.channel_name}" | '
        f'Category: "{video.category or "Unknown"}" | Tags: {tags}'
    )


def build_user_prompt(video: VideoRecord) -> str:
    return (
        "Video:\n"
        + describe_video(video)
        + "\n\nReturn a JSON object of the form "
        '{"stanceProbabilities": {"progressive": p, "conservative": p, "centrist": p, "nonPolitical": p}} '
        "where the four probabilities sum to 1.0. No extra text."
    )


class OpenAIStanceClassifier:
    """Classifies stance with an OpenAI chat model in JSON mode."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", client=None):
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model

    async def classify(self, video: VideoRecord) -> Mapping[str, float]:
        """
        Request stance probabilities for one video.

        Raises:
            ClassificationFailure: When the response is missing or not JSON
        """
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(video)},
            ],
            response_format={"type": "json_object"},
            temperature=0.0,
            max_tokens=200,
        )

        content = (response.choices[0].message.content or "").strip()
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ClassificationFailure(video.video_id, f"invalid JSON from model: {e}") from e

        probabilities = data.get("stanceProbabilities") if isinstance(data, dict) else None
        if not isinstance(probabilities, dict):
            raise ClassificationFailure(video.video_id, "response has no stanceProbabilities")
        return probabilities


# Hypotheses fed to the zero-shot model, one per stance bucket
ZERO_SHOT_LABELS: Dict[str, str] = {
    PROGRESSIVE: "progressive or left-leaning politics",
    CONSERVATIVE: "conservative or right-leaning politics",
    CENTRIST: "centrist or balanced political commentary",
    NON_POLITICAL: "entertainment, technology, lifestyle or other non-political content",
}


@lru_cache(maxsize=2)
def _load_zero_shot_pipeline(model_name: str):
    """
    Load a zero-shot classification pipeline.

    Returns:
        A transformers pipeline callable

    Raises:
        RuntimeError: If required dependencies are not installed
    """
    try:
        from transformers import pipeline
    except ImportError as e:
        raise RuntimeError(
            "Local stance classifier dependencies are missing. Install transformers and torch.\n"
            "Try: pip install 'echobreaker[local]'"
        ) from e

    return pipeline("zero-shot-classification", model=model_name)


class ZeroShotStanceClassifier:
    """Classifies stance locally with an NLI zero-shot model."""

    def __init__(self, model_name: str = "facebook/bart-large-mnli"):
        self.model_name = model_name

    def _classify_sync(self, text: str) -> Dict[str, float]:
        classifier = _load_zero_shot_pipeline(self.model_name)
        labels = list(ZERO_SHOT_LABELS.values())
        # Single-label mode softmaxes over the candidates, so scores sum to 1
        output = classifier(text, candidate_labels=labels, multi_label=False)

        by_label = dict(zip(output["labels"], output["scores"]))
        return {bucket: float(by_label.get(label, 0.0)) for bucket, label in ZERO_SHOT_LABELS.items()}

    async def classify(self, video: VideoRecord) -> Mapping[str, float]:
        text = f"{video.title}. {video.channel_name}. {video.category or ''}".strip()
        return await asyncio.to_thread(self._classify_sync, text)


def build_classifier(config: Optional[Settings] = None) -> StanceClassifier:
    """
    Pick the classifier backend from settings.

    OpenAI is used when explicitly requested or when an API key is present and
    no backend is named; otherwise the local zero-shot model is used.
    """
    config = config or default_settings
    backend = (config.CLASSIFIER_BACKEND or "").strip().lower()

    if backend == "openai" or (not backend and config.OPENAI_API_KEY):
        logger.info("Using OpenAI stance classifier (%s)", config.OPENAI_MODEL)
        return OpenAIStanceClassifier(api_key=config.OPENAI_API_KEY, model=config.OPENAI_MODEL)

    logger.info("Using local zero-shot stance classifier (%s)", config.LOCAL_MODEL)
    return ZeroShotStanceClassifier(model_name=config.LOCAL_MODEL)
