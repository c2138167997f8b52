"""Sentence-similarity via the Hugging Face inference API."""
from __future__ import annotations

import requests

from internpilot.config import get_env
from internpilot.log import get_logger

log = get_logger(__name__)

API_URL = "https://api-inference.huggingface.co/models/"
DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


class SimilarityUnavailable(RuntimeError):
    pass


class SentenceSimilarity:
    def __init__(self, api_key: str | None = None, model: str = DEFAULT_MODEL, timeout: float = 20.0) -> None:
        self.api_key = api_key if api_key is not None else get_env("HUGGINGFACE_API_KEY")
        self.model = model
        self.timeout = timeout

    def scores(self, source: str, sentences: list[str]) -> list[float]:
        """Similarity of ``source`` to each sentence, each in [0, 1]."""
        if not self.api_key:
            raise SimilarityUnavailable("HUGGINGFACE_API_KEY not set")
        try:
            r = requests.post(
                f"{API_URL}{self.model}",
                json={"inputs": {"source_sentence": source, "sentences": sentences}},
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as exc:
            raise SimilarityUnavailable(f"Hugging Face API failed: {exc}") from exc
        if not isinstance(data, list) or len(data) != len(sentences):
            raise SimilarityUnavailable(f"Invalid response from Hugging Face API: {str(data)[:120]}")
        try:
            return [max(0.0, min(1.0, float(v))) for v in data]
        except (TypeError, ValueError) as exc:
            raise SimilarityUnavailable(f"Non-numeric similarity in response: {exc}") from exc
