from __future__ import annotations

import pytest

from quizgate.core.errors import GenerationError, InputValidationError
from quizgate.schemas.quiz import QuestionConfig
from quizgate.services import llm_service
from quizgate.services import question_generation_service as gen


CONFIGS = [
    QuestionConfig(question_type="multiple_choice", difficulty="easy", count=2),
    QuestionConfig(question_type="true_false", difficulty="hard", count=1),
]


@pytest.fixture()
def llm_on(monkeypatch):
    monkeypatch.setattr(gen, "llm_available", lambda: True)


def test_prompt_describes_distribution_and_points():
    messages = gen.build_generation_messages("Photosynthesis", CONFIGS)
    user = messages[-1]["content"]
    assert "Generate 3 questions about: Photosynthesis" in user
    assert "2 multiple choice question(s), easy" in user
    assert "1 true/false question(s), hard" in user
    assert "exactly 4 options" in user
    assert "easy=1, medium=2, hard=3" in user


def test_drafts_are_validated_and_bad_ones_dropped(monkeypatch, llm_on):
    captured = {}

    def fake_chat_json(**kwargs):
        captured.update(kwargs)
        return {
            "questions": [
                {
                    "question_text": "Which gas do plants absorb?",
                    "question_type": "multiple_choice",
                    "difficulty": "easy",
                    "correct_answer": "CO2",
                    "options": ["O2", "CO2", "N2", "H2"],
                },
                {
                    "question_text": "Chlorophyll is green.",
                    "question_type": "true_false",
                    "difficulty": "hard",
                    "correct_answer": "True",
                    "options": ["True", "False"],
                },
                {"question_text": "Essay?", "question_type": "essay", "correct_answer": "x"},
                {"question_text": "MC without options", "question_type": "multiple_choice", "correct_answer": "A"},
                "not a question",
            ]
        }

    monkeypatch.setattr(gen, "chat_json", fake_chat_json)
    drafts = gen.generate_questions("Photosynthesis", CONFIGS)

    assert [d.question_type for d in drafts] == ["multiple_choice", "true_false"]
    assert drafts[0].points == 1
    assert drafts[0].options == ["O2", "CO2", "N2", "H2"]
    assert drafts[1].points == 3
    assert drafts[1].options is None
    assert captured["messages"][0]["role"] == "system"


def test_extra_drafts_are_cut_to_requested_total(monkeypatch, llm_on):
    q = {"question_text": "T?", "question_type": "true_false", "difficulty": "easy", "correct_answer": "True"}
    monkeypatch.setattr(gen, "chat_json", lambda **kw: {"questions": [q] * 10})
    assert len(gen.generate_questions("x", CONFIGS)) == 3


def test_no_usable_drafts_is_generation_error(monkeypatch, llm_on):
    monkeypatch.setattr(gen, "chat_json", lambda **kw: {"status": "OK"})
    with pytest.raises(GenerationError):
        gen.generate_questions("x", CONFIGS)


def test_llm_failure_is_generation_error(monkeypatch, llm_on):
    def boom(**kw):
        raise ValueError("Could not parse JSON from LLM output.")

    monkeypatch.setattr(gen, "chat_json", boom)
    with pytest.raises(GenerationError) as ei:
        gen.generate_questions("x", CONFIGS)
    assert ei.value.status_code == 502


def test_unconfigured_llm_is_generation_error(monkeypatch):
    monkeypatch.setattr(gen, "llm_available", lambda: False)
    with pytest.raises(GenerationError) as ei:
        gen.generate_questions("x", CONFIGS)
    assert ei.value.message == "Question generation is not configured"


def test_request_bounded_by_max_questions(monkeypatch, llm_on):
    monkeypatch.setattr(gen.settings, "QUIZ_GEN_MAX_QUESTIONS", 2)
    with pytest.raises(InputValidationError):
        gen.generate_questions("x", CONFIGS)


def test_llm_json_parsing_tolerates_wrappers():
    assert llm_service._safe_json_loads('```json\n{"questions": []}\n```') == {"questions": []}
    assert llm_service._safe_json_loads('<think>hmm</think>{"a": 1,}') == {"a": 1}
    assert llm_service._safe_json_loads("{'a': True, 'b': None}") == {"a": True, "b": None}
    with pytest.raises(ValueError):
        llm_service._safe_json_loads("no json here")


def test_placeholder_key_disables_llm(monkeypatch):
    monkeypatch.setattr(llm_service.settings, "OPENAI_BASE_URL", None)
    monkeypatch.setattr(llm_service.settings, "OPENAI_API_KEY", "your_api_key")
    assert llm_service.llm_available() is False
    monkeypatch.setattr(llm_service.settings, "OPENAI_API_KEY", "sk-live-123")
    assert llm_service.llm_available() is True
