from .models import Fragment, JournalOutput, TitleStyle, WritingStyle

__all__ = ["Fragment", "JournalOutput", "WritingStyle", "TitleStyle"]
