"""Prompt templates and assembly for journal synthesis and memory extraction."""

from datetime import datetime
from typing import Optional

from shared_types import FragmentKind, JournalLanguage

from .models import DEFAULT_INSIGHT_PROMPT, Fragment, TitleStyle, WritingStyle


class PromptTemplates:
    """Raw templates. Filled in by PromptBuilder."""

    STREAM_SYSTEM = """Role: You are "Wing", an empathetic AI diary assistant.
Task: Write a cohesive diary entry based on the user's raw fragments for the day.
Format: Output ONLY the diary content in Markdown. Do not wrap in JSON. Do not include title or other metadata fields.
Language: {language}
{tone}"""

    JOURNAL_SYSTEM = """Role: You are an expert ghostwriter. You have no identity of your own. Your ONLY function is to convert the user's raw fragments into a polished, first-person ("I") diary entry.

Task: Synthesize the provided fragments into a cohesive narrative.
Language: {language}

IMPORTANT - Writing Style (Follow strictly):
{tone}

Output Format:
Return ONLY a raw, minified JSON object. No Markdown code fences. Ensure strictly valid JSON syntax. Escape all newlines (\\n) and double quotes (\\") within string values.

Structure:
{{
  "title": "{title}",
  "summary": "One-sentence summary of the day",
  "mood": "A single emoji representing the mood. Prefer specific objects (e.g., ☕️, 🐱, 🌧️) over generic faces if mentioned.",
  "content": "Full diary content in Markdown. Use ## for headers if needed. NO Title/Date at start.",
  "insights": "{insight}"
}}

Content Guidelines:
1. First-Person Immersion: Write strictly as "I". Never address the user as "you". Never mention "Wing", "AI", or "Assistant".
2. Handling Fragments: Weave fragments into a smooth story. Do not list them.
3. Handling Photos: If the input contains "[Photo]" markers, IGNORE and REMOVE them. Do not describe them.
4. Memory Usage: If "Background Context (Implicit Knowledge)" is provided, treat it as the user's own existing knowledge for continuity, but NEVER say "According to records".
5. Formatting: Use Markdown (bold **, lists -). NO emoji inside the 'content' field.
6. Natural Time & Date: NEVER mention the exact calendar date. Use natural references like "Today" and turn timestamps into narrative flow."""

    MEMORY_SYSTEM = """Role: You are an expert Memory Archivist for a personal diary AI.
Task: Extract structured memories from the user's diary entry to build a long-term knowledge base.
Input: A single diary entry.
Output: A JSON object with three categories of memories:

1. semantic (Facts): Static facts about the user (names, locations, relationships, preferences).
   - key: Standardized attribute name (e.g., "user_name", "spouse_name", "current_city").
   - value: The fact value.
   - confidence: 0.8 to 1.0 (High confidence only).

2. episodic (Events): Significant life events found in the entry.
   - event: Concise description of what happened.
   - date: Date string (YYYY-MM-DD). If not explicit, interpret from context (today is the entry date).
   - emotion: Dominant emotion (e.g., "Joyful", "Anxious").
   - context: Brief context or significance.

3. procedural (Patterns): User behavioral patterns or interaction preferences inferred from the writing.
   - pattern: E.g., "Late night writing", "Short sentence style".
   - preference: E.g., "Likes harsh advice", "Prefers soothing tone".
   - trigger: What triggers this pattern (optional).

Language Requirement: {language}
Format: JSON ONLY. No markdown blocks.

Example Output:
{{
  "semantic": [{{"key": "user_name", "value": "Hans", "confidence": 0.9}}],
  "episodic": [{{"event": "Completed Phase 8 development", "date": "2026-02-05", "emotion": "Accomplished", "context": "Work achievement"}}],
  "procedural": []
}}"""

    USER = """Context: {date}
User's fragments for today (in chronological order):

{fragments}"""

    MEMORY_CONTEXT = "\n\nBackground Context (Implicit Knowledge):\n\n{memories}"

    USER_CLOSING = "\n\nSynthesize these fragments into a cohesive first-person narrative."


_JOURNAL_LANGUAGE = {
    JournalLanguage.AUTO: "Detect language from fragments and write in the same language.",
    JournalLanguage.ZH: "Write the diary ONLY in Chinese (简体中文).",
    JournalLanguage.EN: "Write the diary ONLY in English.",
}

_MEMORY_LANGUAGE = {
    JournalLanguage.AUTO: "Output languages matching the input content.",
    JournalLanguage.ZH: "Ensure all values (except standardized keys) are in Chinese (简体中文).",
    JournalLanguage.EN: "Ensure all values are in English.",
}

PHOTO_MARKER = "[Photo]"


def _custom_or(custom: Optional[str], default: str) -> str:
    if custom and custom.strip():
        return custom
    return default


class PromptBuilder:
    """Assembles system and user prompts from fragments, memories, and style settings."""

    def __init__(
        self,
        language: JournalLanguage = JournalLanguage.AUTO,
        writing_style: WritingStyle = WritingStyle.PROSE,
        writing_style_prompt: Optional[str] = None,
        title_style: TitleStyle = TitleStyle.ABSTRACT,
        title_style_prompt: Optional[str] = None,
        insight_prompt: Optional[str] = None,
    ):
        self.language = JournalLanguage(language)
        self.writing_style = WritingStyle(writing_style)
        self.writing_style_prompt = writing_style_prompt
        self.title_style = TitleStyle(title_style)
        self.title_style_prompt = title_style_prompt
        self.insight_prompt = insight_prompt

    @classmethod
    def from_config(cls, journal_config) -> "PromptBuilder":
        return cls(
            language=journal_config.language,
            writing_style=journal_config.writing_style,
            writing_style_prompt=journal_config.writing_style_prompt,
            title_style=journal_config.title_style,
            title_style_prompt=journal_config.title_style_prompt,
            insight_prompt=journal_config.insight_prompt,
        )

    def tone_instruction(self) -> str:
        if self.writing_style == WritingStyle.CUSTOM:
            return _custom_or(self.writing_style_prompt, WritingStyle.PROSE.default_prompt)
        return self.writing_style.default_prompt

    def title_instruction(self) -> str:
        if self.title_style == TitleStyle.CUSTOM:
            return _custom_or(self.title_style_prompt, TitleStyle.ABSTRACT.default_prompt)
        return self.title_style.default_prompt

    def stream_system_prompt(self) -> str:
        """Plain-markdown instruction for the interactive (streamed) path."""
        return PromptTemplates.STREAM_SYSTEM.format(
            language=_JOURNAL_LANGUAGE[self.language],
            tone=self.tone_instruction(),
        )

    def journal_system_prompt(self) -> str:
        """JSON-object instruction for the batch path."""
        return PromptTemplates.JOURNAL_SYSTEM.format(
            language=_JOURNAL_LANGUAGE[self.language],
            tone=self.tone_instruction(),
            title=self.title_instruction(),
            insight=_custom_or(self.insight_prompt, DEFAULT_INSIGHT_PROMPT),
        )

    def memory_system_prompt(self) -> str:
        return PromptTemplates.MEMORY_SYSTEM.format(language=_MEMORY_LANGUAGE[self.language])

    def user_prompt(self, fragments: list[Fragment], memories: Optional[list[str]] = None) -> str:
        """Fragments in timestamp order, dated by the earliest one, plus optional memory context."""
        ordered = sorted(fragments, key=lambda f: f.timestamp)
        lines = [self._format_fragment(f) for f in ordered]

        first = (
            datetime.fromtimestamp(ordered[0].timestamp / 1000) if ordered else datetime.now()
        )
        prompt = PromptTemplates.USER.format(
            date=first.strftime("%Y-%m-%d %A"),
            fragments="\n".join(lines),
        )
        if memories:
            prompt += PromptTemplates.MEMORY_CONTEXT.format(memories="\n\n".join(memories))
        return prompt + PromptTemplates.USER_CLOSING

    @staticmethod
    def _format_fragment(fragment: Fragment) -> str:
        time_str = datetime.fromtimestamp(fragment.timestamp / 1000).strftime("%H:%M")
        parts = [f"[{time_str}]"]
        if fragment.kind == FragmentKind.IMAGE:
            parts.append(PHOTO_MARKER)
        if fragment.content:
            parts.append(fragment.content)
        return " ".join(parts)
