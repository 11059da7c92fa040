"""Prompt construction shared by every generation provider.

The corpus is Japanese statute text, so prompts are written in Japanese.
Each provider sends the same system prompt, numbered context block and
recent history; only the transport differs.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lexrag.models.conversation import ConversationMessage
    from lexrag.models.document import SearchResult

#: Turns of history included in the answer prompt.
HISTORY_TURNS = 4
#: Retrieved chunks summarised for follow-up question generation.
RELATED_CONTEXT_CHUNKS = 3
#: Characters of each chunk included in the follow-up prompt.
RELATED_CONTEXT_CHARS = 200
MAX_RELATED_QUESTIONS = 3

SYSTEM_PROMPT = """\
あなたは日本の法律文書に特化したAIアシスタントです。

以下のガイドラインに従って回答してください：

1. **正確性**: 提供された文書の内容に基づいて正確に回答してください
2. **引用**: 回答には必ず適切な引用を含めてください
3. **日本語**: 回答は自然で読みやすい日本語で行ってください
4. **構造化**: 複雑な内容は箇条書きや段落で整理してください
5. **謙虚さ**: 不確実な情報については明確に示してください

注意事項：
- 法的助言は提供しません
- 文書に記載されていない内容については推測を避けてください
- 複数の解釈がある場合は、それを明示してください
"""

NO_CONTEXT_PROMPT = "関連する文書が見つかりませんでした。"

_NUMBERED_LINE = re.compile(r"^\s*\d+[.．)）]\s*(.*)$")


def build_context_prompt(context: list[SearchResult]) -> str:
    """Render retrieved chunks as a numbered reference block."""
    if not context:
        return NO_CONTEXT_PROMPT

    sections = []
    for index, result in enumerate(context, start=1):
        chunk = result.chunk
        sections.append(
            f"【文書{index}】{chunk.title}\n"
            f"ファイル: {chunk.metadata.file_name}\n"
            f"関連度: {result.score * 100:.1f}%\n\n"
            f"内容:\n{chunk.content}"
        )
    return "以下の文書を参照して回答してください：\n\n" + "\n---\n".join(sections)


def build_conversation_history(conversation: list[ConversationMessage] | None) -> str:
    if not conversation:
        return ""
    lines = []
    for message in conversation[-HISTORY_TURNS:]:
        role = "ユーザー" if message.role == "user" else "アシスタント"
        lines.append(f"{role}: {message.content}")
    return "会話履歴:\n" + "\n".join(lines)


def build_user_prompt(
    prompt: str,
    context: list[SearchResult],
    conversation: list[ConversationMessage] | None,
) -> str:
    """Combine context, history and the question into one user message."""
    parts = [build_context_prompt(context)]
    history = build_conversation_history(conversation)
    if history:
        parts.append(history)
    parts.append(f"ユーザーの質問: {prompt}")
    return "\n\n".join(parts)


def build_related_questions_prompt(query: str, context: list[SearchResult]) -> str:
    summary = "\n---\n".join(
        result.chunk.content[:RELATED_CONTEXT_CHARS]
        for result in context[:RELATED_CONTEXT_CHUNKS]
    )
    return (
        "以下の文脈と質問に基づいて、関連する質問を3つ生成してください。\n"
        "質問は日本語で、法律文書の内容に関する具体的で有用なものにしてください。\n\n"
        f"元の質問: {query}\n\n"
        f"文脈:\n{summary}\n\n"
        "関連質問（3つ）:\n1.\n2.\n3.\n"
    )


def parse_related_questions(text: str) -> list[str]:
    """Pull numbered lines (``1. ...``) out of a model reply, at most three."""
    questions = []
    for line in text.splitlines():
        match = _NUMBERED_LINE.match(line)
        if match and match.group(1).strip():
            questions.append(match.group(1).strip())
    return questions[:MAX_RELATED_QUESTIONS]
