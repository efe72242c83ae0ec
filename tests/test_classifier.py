"""
Unit tests for the search-need classifier: token parsing and fail-open policy.
"""

from unittest.mock import patch

import pytest

from app.agent.classifier import SearchDecision, classify_search_need, decide, parse_decision
from app.agent.prompts import DEFAULT_SEARCH_PROMPT, render_template
from app.core.errors import LLMError

TEMPLATE = 'Pergunta: "{question}"\nResponda SIM ou NÃO.'


class TestParseDecision:
    """Tests for parse_decision()."""

    @pytest.mark.parametrize("raw", ["SIM", "sim", "  Sim \n", "\tSIM"])
    def test_affirmative_token_case_and_whitespace_insensitive(self, raw: str) -> None:
        assert parse_decision(raw) is SearchDecision.NEEDS_SEARCH

    @pytest.mark.parametrize("raw", ["NÃO", "não", " Não\n"])
    def test_negative_token(self, raw: str) -> None:
        assert parse_decision(raw) is SearchDecision.NO_SEARCH_NEEDED

    @pytest.mark.parametrize("raw", ["", "SIM.", "Sim, precisa", "YES", "NAO", "talvez"])
    def test_anything_else_is_undetermined(self, raw: str) -> None:
        assert parse_decision(raw) is SearchDecision.UNDETERMINED


class TestDecide:
    """Tests for decide() with the LLM mocked."""

    def test_affirmative_returns_true(self) -> None:
        with patch("app.agent.classifier.chat_completion", return_value=" sim "):
            assert decide("dose de paracetamol", TEMPLATE) is True

    def test_negative_returns_false(self) -> None:
        with patch("app.agent.classifier.chat_completion", return_value="NÃO"):
            assert decide("o que é um antibiótico?", TEMPLATE) is False

    def test_other_text_fails_open(self) -> None:
        with patch("app.agent.classifier.chat_completion", return_value="Depende do contexto"):
            assert decide("pergunta", TEMPLATE) is True

    def test_llm_error_fails_open(self) -> None:
        with patch("app.agent.classifier.chat_completion", side_effect=LLMError("timeout")):
            assert decide("pergunta", TEMPLATE) is True

    def test_unexpected_exception_does_not_propagate(self) -> None:
        with patch("app.agent.classifier.chat_completion", side_effect=RuntimeError("boom")):
            assert classify_search_need("pergunta", TEMPLATE) is SearchDecision.UNDETERMINED

    def test_sends_rendered_template_as_single_user_turn(self) -> None:
        with patch("app.agent.classifier.chat_completion", return_value="SIM") as mock_llm:
            classify_search_need("ibuprofeno e álcool", TEMPLATE)
        mock_llm.assert_called_once()
        messages = mock_llm.call_args.args[0]
        assert messages == [{"role": "user", "content": 'Pergunta: "ibuprofeno e álcool"\nResponda SIM ou NÃO.'}]


class TestRenderTemplate:
    """Tests for render_template()."""

    def test_substitutes_placeholder(self) -> None:
        out = render_template(DEFAULT_SEARCH_PROMPT, "dipirona")
        assert '"dipirona"' in out
        assert "{question}" not in out

    def test_only_first_placeholder_replaced(self) -> None:
        assert render_template("{question} / {question}", "x") == "x / {question}"

    def test_template_without_placeholder_unchanged(self) -> None:
        assert render_template("no slot here", "x") == "no slot here"
