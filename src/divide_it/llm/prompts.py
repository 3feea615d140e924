"""Prompt templates for summaries and social copy.

Every prompt asks for English output whatever the spoken language, since
titles are burned into the video for an English-speaking audience.
"""

from __future__ import annotations

from dataclasses import dataclass

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates clear and accurate summaries. "
    "Always respond in English only, regardless of the input language."
)

DESCRIPTION_SYSTEM_PROMPT = (
    "You are a social media content creator expert. Create engaging descriptions "
    "for TikTok and Instagram Reels that hook viewers, include relevant hashtag "
    "suggestions, and are optimized for engagement. Always respond in English only, "
    "regardless of the input language."
)

TITLE_SYSTEM_PROMPT = (
    "You are a social media expert. Create catchy, short titles (exactly 5-7 words) "
    "for TikTok and Instagram Reels. Titles should be attention-grabbing and summarize "
    "the video content. Always respond in English only, regardless of the input "
    "language. Respond ONLY with the title, no additional text."
)


@dataclass
class SummaryPromptBuilder:
    """Builds user prompts for each summary style.

    Attributes:
        platform: Where the clips are posted, used in social prompts
    """

    platform: str = "TikTok or Instagram Reel"

    def build_summary_prompt(self, text: str, style: str, max_length_words: int) -> str:
        """Prompt for ``style`` ("concise", "detailed", "bullet-points", "social-media").

        Unknown styles fall back to concise.
        """
        if style == "bullet-points":
            return (
                f"Summarize the following text in {max_length_words} words or less "
                f"as bullet points:\n\n{text}"
            )
        if style == "detailed":
            return (
                f"Provide a detailed summary of the following text in approximately "
                f"{max_length_words} words:\n\n{text}"
            )
        if style == "social-media":
            return (
                f"Create an engaging description for a {self.platform} based on this "
                f"video transcription. The description should be:\n"
                f"- Engaging and hook the viewer\n"
                f"- Include relevant hashtags suggestions\n"
                f"- Be optimized for social media (catchy, clear, and action-oriented)\n"
                f"- Maximum {max_length_words} words\n"
                f"- Written in English only\n\n"
                f"Video transcription:\n\n{text}"
            )
        return (
            f"Summarize the following text concisely in {max_length_words} words "
            f"or less:\n\n{text}"
        )

    def build_description_prompt(self, text: str, max_length_words: int) -> str:
        return (
            f"Create an engaging description for a {self.platform} based on this "
            f"video transcription. The description should be:\n"
            f"- Engaging and hook the viewer in the first sentence\n"
            f"- Include 3-5 relevant hashtag suggestions at the end\n"
            f"- Be optimized for social media (catchy, clear, and action-oriented)\n"
            f"- Maximum {max_length_words} words\n"
            f"- Written in English only\n\n"
            f"Video transcription:\n\n{text}"
        )

    def build_title_prompt(self, text: str) -> str:
        return (
            f"Based on this video transcription, create a catchy title of exactly 5-7 "
            f"words in English for a {self.platform}. The title should be "
            f"attention-grabbing and summarize the main point. Respond ONLY with the "
            f"title in English, nothing else.\n\nVideo transcription:\n\n{text}"
        )


DEFAULT_PROMPTS = SummaryPromptBuilder()
