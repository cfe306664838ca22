"""Language-model text analysis used to summarize each reputation category."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from replookup.models import AnalysisCategory, Severity, TargetPerson
from replookup.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)

ANALYST_SYSTEM_PROMPT = (
    "You are an expert reputation analyst. Provide objective, balanced analysis of content for "
    "reputation assessment purposes. Be thorough but fair in your evaluation."
)
SUMMARY_SYSTEM_PROMPT = (
    "You are a professional reputation analyst creating executive summaries for business stakeholders. "
    "Maintain objectivity and professional tone."
)

_TRAILING_JSON_BLOCK = re.compile(r"```(?:json)?\s*(?P<body>[\[{].*?[\]}])\s*```\s*$", re.DOTALL)


class SummarizerError(RuntimeError):
    """Raised when the language model cannot produce an analysis."""


@dataclass(slots=True)
class FlagCandidate:
    """A concern reported by the model, not yet tied to a known source."""

    content: str
    reason: str
    severity: Severity
    url: Optional[str] = None


@dataclass(slots=True)
class CategoryAnalysis:
    analysis: str
    flagged: List[FlagCandidate] = field(default_factory=list)


def build_category_prompt(content: str, category: str) -> str:
    return (
        f"Analyze the following content for reputation assessment in the category: {category}\n\n"
        f"Content to analyze:\n{content}\n\n"
        "Please provide:\n"
        f"1. On the first line, a brief summary of the content's relevance to {category}\n"
        "2. Detailed reasoning for your assessment on the following lines\n"
        "3. An overall assessment of how this content reflects on the person's reputation\n\n"
        "Be objective, factual, and consider context. Flag content only if it's genuinely concerning. "
        "If anything should be flagged, end your answer with a fenced json block holding a list of "
        'objects with "content", "reason", "severity" (low, medium or high) and "url" keys.'
    )


def build_summary_prompt(category_results: Mapping[str, AnalysisCategory], target: TargetPerson) -> str:
    sections = []
    for key, category in category_results.items():
        payload = {
            "name": category.name,
            "summary": category.summary,
            "reasoning": category.reasoning,
            "flaggedContent": len(category.flagged_content),
            "sources": len(category.sources),
        }
        sections.append(f"{key}: {json.dumps(payload, indent=2, ensure_ascii=False)}")
    return (
        f"Generate a comprehensive executive summary for a reputation report about {target.name}.\n\n"
        "Based on the following category analyses:\n"
        + "\n\n".join(sections)
        + "\n\nProvide a balanced, professional executive summary that:\n"
        "1. Gives an overall assessment of the person's digital reputation\n"
        "2. Highlights key findings across all categories\n"
        "3. Notes any significant positive or concerning patterns\n"
        "4. Maintains objectivity and professional tone\n"
        "5. Is suitable for business or professional contexts\n\n"
        "Keep it concise but comprehensive (2-3 paragraphs)."
    )


def split_flagged_block(text: str) -> tuple[str, List[FlagCandidate]]:
    """Separate a trailing fenced JSON flag list from the analysis prose."""

    stripped = text.strip()
    match = _TRAILING_JSON_BLOCK.search(stripped)
    if not match:
        return stripped, []
    try:
        payload = json.loads(match.group("body"))
    except json.JSONDecodeError:
        LOGGER.debug("Ignoring unparseable flag block in model output")
        return stripped, []

    if isinstance(payload, dict):
        payload = payload.get("flagged") or payload.get("flaggedContent") or []
    flags: List[FlagCandidate] = []
    for item in payload if isinstance(payload, list) else []:
        if not isinstance(item, dict) or not item.get("content"):
            continue
        try:
            severity = Severity(str(item.get("severity", "low")).lower())
        except ValueError:
            severity = Severity.LOW
        url = item.get("url")
        flags.append(
            FlagCandidate(
                content=str(item["content"]),
                reason=str(item.get("reason") or ""),
                severity=severity,
                url=url if isinstance(url, str) else None,
            )
        )
    return stripped[: match.start()].rstrip(), flags


class TextSummarizer:
    """Category analysis and report summaries through the configured chat model."""

    def __init__(self, *, settings: Settings | None = None, client: Any | None = None) -> None:
        self.settings = settings or get_settings()
        self.provider = (self.settings.llm.provider or "ollama").lower()
        self.max_chars = self.settings.llm.max_content_chars
        self._timeout = self.settings.llm.call_timeout_seconds
        self._client = client if client is not None else self._build_client()

    def _build_client(self):
        if self.provider == "mock":
            return None

        if self.provider == "ollama":
            from langchain_ollama import ChatOllama

            return ChatOllama(
                model=self.settings.llm.chat_model,
                base_url=self.settings.llm.ollama_base_url,
                temperature=self.settings.llm.temperature,
            )
        raise SummarizerError(f"Unsupported LLM provider: {self.provider}")

    async def analyze(self, content: str, category: str) -> CategoryAnalysis:
        if self._client is None:
            return self._mock_analyze(content, category)

        text = await self._complete(ANALYST_SYSTEM_PROMPT, build_category_prompt(content[: self.max_chars], category))
        analysis, flagged = split_flagged_block(text)
        if not analysis:
            raise SummarizerError(f"Model returned no analysis for {category}")
        return CategoryAnalysis(analysis=analysis, flagged=flagged)

    async def summarize_report(
        self, category_results: Mapping[str, AnalysisCategory], target: TargetPerson
    ) -> str:
        if self._client is None:
            return self._mock_summary(category_results, target)
        return await self._complete(SUMMARY_SYSTEM_PROMPT, build_summary_prompt(category_results, target))

    async def _complete(self, system_prompt: str, human_prompt: str) -> str:
        try:
            response = await asyncio.wait_for(
                self._client.ainvoke([SystemMessage(content=system_prompt), HumanMessage(content=human_prompt)]),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise SummarizerError(f"LLM call timed out after {self._timeout:g}s") from exc
        except Exception as exc:
            raise SummarizerError(f"LLM invocation failed: {exc}") from exc

        content = getattr(response, "content", "")
        if not isinstance(content, str) or not content.strip():
            raise SummarizerError("LLM returned an empty response")
        return content.strip()

    @staticmethod
    def _mock_analyze(content: str, category: str) -> CategoryAnalysis:
        excerpts = [chunk for chunk in content.split("\n\n") if chunk.strip()]
        return CategoryAnalysis(
            analysis=(
                f"{category}: {len(excerpts)} source excerpt(s) reviewed.\n"
                "Mock analysis generated without a language model."
            )
        )

    @staticmethod
    def _mock_summary(category_results: Mapping[str, AnalysisCategory], target: TargetPerson) -> str:
        covered = [category.name for category in category_results.values() if category.sources]
        listing = ", ".join(covered) if covered else "no categories"
        return f"Mock reputation summary for {target.name} covering {listing}."


__all__ = [
    "CategoryAnalysis",
    "FlagCandidate",
    "SummarizerError",
    "TextSummarizer",
    "build_category_prompt",
    "build_summary_prompt",
    "split_flagged_block",
]
