"""Event assistant: classify, route, and synthesize answers scoped to one event."""

from __future__ import annotations

import logging
from typing import Optional

from opentelemetry import trace

from eventnet.knowledge.retrieval.intent import IntentClassifier
from eventnet.knowledge.retrieval.router import RetrievalRouter
from eventnet.knowledge.retrieval.synthesizer import APOLOGY_ANSWER, AnswerSynthesizer
from eventnet.models import AssistantAnswer
from eventnet.utils.monitoring import observe_assistant_query

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MISSING_EVENT_ANSWER = "Error: No Event Context provided."


class EventAssistant:
    """Answers questions about an event and its attendees.

    ``answer_question`` never raises: every failure below it ends as the fixed apology
    with no sources.
    """

    def __init__(
        self,
        router: RetrievalRouter,
        *,
        classifier: IntentClassifier | None = None,
        synthesizer: AnswerSynthesizer | None = None,
    ) -> None:
        self.router = router
        self.classifier = classifier or IntentClassifier()
        self.synthesizer = synthesizer or AnswerSynthesizer()

    async def answer_question(
        self,
        event_id: str,
        question: str,
        asking_identity_id: Optional[str] = None,
    ) -> AssistantAnswer:
        if not event_id:
            return AssistantAnswer(answer=MISSING_EVENT_ANSWER)

        with tracer.start_as_current_span("assistant.answer_question") as span:
            span.set_attribute("event.id", event_id)
            # Audit only; retrieval scope is always the event.
            logger.info(
                "Assistant question received",
                extra={"event_id": event_id, "asking_identity_id": asking_identity_id},
            )
            try:
                intent = await self.classifier.classify(question)
                span.set_attribute("assistant.intent", intent.value)

                outcome = await self.router.route(event_id, question, intent)
                span.set_attribute("assistant.path", outcome.path)
                if outcome.needs_synthesis:
                    answer = await self.synthesizer.synthesize(question, intent, outcome.matches)
                else:
                    answer = outcome.answer
                observe_assistant_query(intent.value, outcome.path)
                return answer
            except Exception as exc:
                span.record_exception(exc)
                logger.exception("Assistant query failed for event %s: %s", event_id, exc)
                observe_assistant_query("unknown", "error")
                return AssistantAnswer(answer=APOLOGY_ANSWER)
