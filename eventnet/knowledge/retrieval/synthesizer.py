"""
Answer Synthesizer

Turns retrieved event context into a grounded answer. The model is instructed to use
only the supplied context; when generation fails the caller gets a fixed apology and
no sources instead of an exception.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from eventnet.core.config import settings
from eventnet.models import AnswerSource, AssistantAnswer, Intent, VectorMatch
from eventnet.utils.llm import LLMClient, llm_client
from eventnet.utils.text import snippet

logger = logging.getLogger(__name__)

APOLOGY_ANSWER = "I'm sorry, I ran into a problem answering that. Please try again shortly."

SYSTEM_INSTRUCTION = """You are a strict Event Assistant.
Context is retrieved based on intent: {intent}.

GUIDELINES:
1. Answer using ONLY the provided Context.
2. Do NOT hallucinate. If the information is missing, say "I don't know".
3. Do not infer external knowledge.
4. Keep answers concise.
5. Never reveal internal identifiers.

CONTEXT:
{context}
"""


def build_context(matches: Sequence[VectorMatch]) -> str:
    return "\n\n".join(f"[{match.category.label}] {match.text}" for match in matches)


def build_sources(matches: Sequence[VectorMatch], *, limit: int, length: int) -> List[AnswerSource]:
    return [
        AnswerSource(category=match.category.value, snippet=snippet(match.text, length))
        for match in matches[:limit]
    ]


class AnswerSynthesizer:
    def __init__(
        self,
        llm: LLMClient | None = None,
        *,
        source_limit: int | None = None,
        snippet_length: int | None = None,
    ) -> None:
        self.llm = llm or llm_client
        self.source_limit = source_limit or settings.SOURCE_LIMIT
        self.snippet_length = snippet_length or settings.SNIPPET_LENGTH

    async def synthesize(self, question: str, intent: Intent, matches: Sequence[VectorMatch]) -> AssistantAnswer:
        system_instruction = SYSTEM_INSTRUCTION.format(intent=intent.value, context=build_context(matches))
        try:
            answer = await self.llm.generate(system_instruction, f"QUESTION: {question}")
        except Exception as exc:
            logger.error("Answer generation failed: %s", exc)
            return AssistantAnswer(answer=APOLOGY_ANSWER, sources=[], intent=intent)

        return AssistantAnswer(
            answer=answer,
            sources=build_sources(matches, limit=self.source_limit, length=self.snippet_length),
            intent=intent,
        )
