"""
Text formatting for displayed, shared and widget verses.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""

from ..models.verse import AppSettings, VerseSnapshot


class VerseFormatter:
    """
    Format a verse snapshot for the widget and for sharing.

    Features:
    - Chapter label with name and reference
    - Original text and translation honoring display settings
    - Share text with a trailing citation
    """

    @staticmethod
    def format_chapter_label(snapshot: VerseSnapshot) -> str:
        """
        Chapter name followed by the reference.

        Example:
            "Al-Baqarah 2:255"
        """
        name = snapshot.chapter.name or snapshot.verse.chapter_name
        reference = snapshot.ref.canonical_reference
        if not name:
            return reference
        return f"{name} {reference}"

    @staticmethod
    def original_text(snapshot: VerseSnapshot) -> str:
        return snapshot.verse.arabic or snapshot.verse.arabic_plain

    @staticmethod
    def translation_text(snapshot: VerseSnapshot, settings: AppSettings) -> str:
        return snapshot.verse.translation_text(settings.preferred_translation)

    @classmethod
    def format_share_text(cls, snapshot: VerseSnapshot, settings: AppSettings) -> str:
        """
        Build the text a user shares for a verse.

        The original text and translation are included according to the
        display settings; if both are turned off the translation is used so
        the shared text is never empty.

        Args:
            snapshot: Verse to share
            settings: Current user settings

        Returns:
            Multi-line share text ending with the citation
        """
        parts = []

        if settings.show_original_text and cls.original_text(snapshot):
            parts.append(cls.original_text(snapshot))

        translation = cls.translation_text(snapshot, settings)
        if translation and (settings.show_translation or not parts):
            parts.append(translation)

        parts.append(f"(Quran {cls.format_chapter_label(snapshot)})")
        return "\n\n".join(parts)
