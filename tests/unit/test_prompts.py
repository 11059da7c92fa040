"""Unit tests for the shared prompt builders."""

from __future__ import annotations

from lexrag.models.conversation import ConversationMessage
from lexrag.providers.llm import prompts
from tests.conftest import make_result


class TestContextPrompt:
    def test_no_context(self) -> None:
        assert prompts.build_context_prompt([]) == prompts.NO_CONTEXT_PROMPT

    def test_numbered_sections(self) -> None:
        text = prompts.build_context_prompt([make_result("c1", 0.9), make_result("c2", 0.456)])

        assert "【文書1】日本国憲法" in text
        assert "【文書2】日本国憲法" in text
        assert "関連度: 90.0%" in text
        assert "関連度: 45.6%" in text
        assert "ファイル: 321CONSTITUTION_19461103_000000000000000.md" in text


class TestUserPrompt:
    def test_history_limited_to_recent_turns(self) -> None:
        history = [
            ConversationMessage(role="user" if n % 2 == 0 else "assistant", content=f"m{n}")
            for n in range(6)
        ]
        text = prompts.build_user_prompt("質問", [], history)

        assert "m0" not in text and "m1" not in text
        assert "ユーザー: m2" in text
        assert "アシスタント: m5" in text
        assert text.endswith("ユーザーの質問: 質問")

    def test_without_history(self) -> None:
        text = prompts.build_user_prompt("質問", [], None)
        assert "会話履歴" not in text


class TestRelatedQuestions:
    def test_prompt_truncates_context(self) -> None:
        results = [make_result(f"c{i}") for i in range(5)]
        text = prompts.build_related_questions_prompt("第九条", results)
        assert text.count("---") == 2
        assert "元の質問: 第九条" in text

    def test_parse_accepts_full_width_numbering(self) -> None:
        reply = "関連質問:\n1．交戦権とは？\n2) 自衛権は？\n3） 前文は？\n\n4. 四つ目"
        assert prompts.parse_related_questions(reply) == ["交戦権とは？", "自衛権は？", "前文は？"]

    def test_parse_ignores_empty_items(self) -> None:
        assert prompts.parse_related_questions("1.\n2.\n3.") == []
