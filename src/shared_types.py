"""Shared enums and types for Wing."""

from enum import StrEnum


class AIProvider(StrEnum):
    GEMINI = "gemini"
    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    CUSTOM = "custom"


class ProviderFamily(StrEnum):
    CHAT_COMPLETION = "chat_completion"
    GENERATE_CONTENT = "generate_content"


class FragmentKind(StrEnum):
    TEXT = "text"
    IMAGE = "image"


class JournalLanguage(StrEnum):
    AUTO = "auto"
    ZH = "zh"
    EN = "en"


class MemoryType(StrEnum):
    SEMANTIC = "semantic"
    EPISODIC = "episodic"
    PROCEDURAL = "procedural"
