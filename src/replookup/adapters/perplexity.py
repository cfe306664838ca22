"""General-purpose web-search AI adapter (Perplexity chat completions)."""

from __future__ import annotations

from typing import Dict, List

from replookup.models import Platform, RecordType, RetrievalResult, TargetPerson

from .base import AdapterError, HttpSourceAdapter

_SYSTEM_PROMPT = (
    "You are a helpful assistant that searches for and analyzes public information about people. "
    "Focus on factual, verifiable information from reliable sources."
)


def build_reputation_query(target: TargetPerson) -> str:
    """Compose the research prompt sent to the web-search model."""

    handles = ", ".join(f"{platform.value}: {handle}" for platform, handle in target.social_handles.items())
    subject = f'"{target.name}"' + (f" (social handles: {handles})" if handles else "")
    return (
        f"Search for comprehensive public information about {subject}.\n\n"
        "Please provide:\n"
        "1. Professional background and career information\n"
        "2. Public statements, interviews, or notable quotes\n"
        "3. Social media presence and engagement patterns\n"
        "4. Any controversies, legal issues, or negative incidents\n"
        "5. Professional achievements and expertise areas\n"
        "6. Community involvement and reputation\n\n"
        "Focus on factual, verifiable information with proper source attribution."
    )


class PerplexityAdapter(HttpSourceAdapter):
    name = "perplexity_api"
    base_url = "https://api.perplexity.ai"

    def __init__(self, *, api_key: str, model: str = "llama-3.1-sonar-small-128k-online", **kwargs) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key
        self._model = model

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def fetch(self, target: TargetPerson) -> List[RetrievalResult]:
        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": _SYSTEM_PROMPT},
                {"role": "user", "content": build_reputation_query(target)},
            ],
            "max_tokens": 1000,
            "temperature": 0.2,
            "return_citations": True,
            "return_images": False,
        }
        async with self.client() as client:
            data = await self.post_json(client, "/chat/completions", json=payload)

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise AdapterError("Perplexity response is missing choices[0].message.content") from exc

        return [
            RetrievalResult(
                platform=Platform.PERPLEXITY.value,
                type=RecordType.ARTICLE,
                content={"text": text, "citations": data.get("citations") or []},
                url="https://perplexity.ai",
                timestamp=None,
                source=self.name,
            )
        ]
