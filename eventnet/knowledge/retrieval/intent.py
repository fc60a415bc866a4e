"""
Intent Classifier

Maps a free-text assistant question to one of three intents. Keyword rules run first and
cost nothing; the LLM is consulted only when no rule fires.

Rule order is significant: member keywords are checked before logistics keywords, so
"who is speaking" is a member search.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Pattern, Sequence, Tuple

from eventnet.models import Intent
from eventnet.utils.llm import LLMClient, llm_client

logger = logging.getLogger(__name__)

GREETING_PATTERN = re.compile(
    r"^\s*(hi|hello|hey|greetings|thanks|thank you|good (morning|afternoon|evening))\b",
    re.IGNORECASE,
)

MEMBER_PATTERN = re.compile(
    r"\b(who|investors?|founders?|ceo|cto|cmo|manufacturers?|compan(y|ies)|startups?|business|roles?|jobs?"
    r"|hiring|people|person|attend(s|ing|ees?)?|participants?|members?|connect|meet|network|list)\b",
    re.IGNORECASE,
)

EVENT_PATTERN = re.compile(
    r"\b(when|where|time|date|venue|location|place|address|agenda|schedule|topics?|subject|learn"
    r"|sessions?|speakers?|talks?|start|end|duration|program|about this event|what is)\b",
    re.IGNORECASE,
)

RULES: Sequence[Tuple[Intent, Pattern[str]]] = (
    (Intent.GENERAL, GREETING_PATTERN),
    (Intent.MEMBER_SEARCH, MEMBER_PATTERN),
    (Intent.EVENT_INFO, EVENT_PATTERN),
)

CLASSIFY_PROMPT = """Classify the query into strictly ONE category:
1. MEMBER_SEARCH: people, companies, roles, counts (e.g. "Any oil manufacturers?", "Who is CEO?", "How many people?")
2. EVENT_INFO: agenda, logistics, topics (e.g. "When does it start?", "Venue?", "What is this?")
3. GENERAL: greetings, unrelated

Return ONLY the category name.
Query: "{question}"
Category:"""


def classify_by_rules(question: str) -> Optional[Intent]:
    text = question.strip()
    for intent, pattern in RULES:
        if pattern.search(text):
            return intent
    return None


def parse_label(raw: str) -> Intent:
    """Map a model reply onto an intent; anything unrecognized is GENERAL."""

    label = raw.strip().strip("\"'.` ").upper()
    for intent in Intent:
        if label == intent.value:
            return intent
    if "MEMBER" in label:
        return Intent.MEMBER_SEARCH
    if "EVENT" in label:
        return Intent.EVENT_INFO
    return Intent.GENERAL


class IntentClassifier:
    """Deterministic rules first, generative fallback second."""

    def __init__(self, llm: LLMClient | None = None) -> None:
        self.llm = llm or llm_client

    async def classify(self, question: str) -> Intent:
        intent = classify_by_rules(question)
        if intent is not None:
            return intent

        if not self.llm.available:
            return Intent.GENERAL

        logger.info("Rule-based classification uncertain; asking the LLM")
        try:
            reply = await self.llm.complete(CLASSIFY_PROMPT.format(question=question))
        except Exception as exc:
            logger.warning("Intent fallback failed, defaulting to GENERAL: %s", exc)
            return Intent.GENERAL
        return parse_label(reply)
