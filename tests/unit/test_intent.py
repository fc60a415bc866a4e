import pytest

from eventnet.knowledge.retrieval.intent import IntentClassifier, classify_by_rules, parse_label
from eventnet.models import Intent


class ScriptedLLM:
    def __init__(self, reply=None, error=None, available=True):
        self.reply = reply
        self.error = error
        self.available = available
        self.prompts = []

    async def complete(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply


@pytest.mark.parametrize(
    "question, expected",
    [
        ("Hello", Intent.GENERAL),
        ("thanks a lot!", Intent.GENERAL),
        ("How many people are attending?", Intent.MEMBER_SEARCH),
        ("Any oil manufacturers here?", Intent.MEMBER_SEARCH),
        ("Who is speaking at the keynote?", Intent.MEMBER_SEARCH),
        ("When is the event?", Intent.EVENT_INFO),
        ("What is the agenda for day two?", Intent.EVENT_INFO),
        ("Where is the venue", Intent.EVENT_INFO),
    ],
)
def test_rule_precedence(question, expected):
    assert classify_by_rules(question) is expected


def test_no_rule_for_unrelated_question():
    assert classify_by_rules("Tell me a joke") is None


@pytest.mark.parametrize(
    "reply, expected",
    [
        ("MEMBER_SEARCH", Intent.MEMBER_SEARCH),
        (" event_info.\n", Intent.EVENT_INFO),
        ("Category: MEMBER", Intent.MEMBER_SEARCH),
        ("banana", Intent.GENERAL),
    ],
)
def test_parse_label(reply, expected):
    assert parse_label(reply) is expected


@pytest.mark.asyncio
async def test_llm_only_consulted_when_no_rule_matches():
    llm = ScriptedLLM(reply="EVENT_INFO")
    classifier = IntentClassifier(llm=llm)

    assert await classifier.classify("Hello there") is Intent.GENERAL
    assert llm.prompts == []

    assert await classifier.classify("Tell me a joke") is Intent.EVENT_INFO
    assert 'Query: "Tell me a joke"' in llm.prompts[0]


@pytest.mark.asyncio
async def test_llm_failure_defaults_to_general():
    classifier = IntentClassifier(llm=ScriptedLLM(error=RuntimeError("timeout")))

    assert await classifier.classify("Tell me a joke") is Intent.GENERAL


@pytest.mark.asyncio
async def test_unavailable_llm_defaults_to_general():
    llm = ScriptedLLM(reply="MEMBER_SEARCH", available=False)

    assert await IntentClassifier(llm=llm).classify("Tell me a joke") is Intent.GENERAL
    assert llm.prompts == []
