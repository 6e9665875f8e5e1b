"""
Purpose:
- Prompt text for the two remote calls (analysis, caption generation) plus the
  free-form description call.
- build_caption_prompt() composes the generation prompt from tag labels and,
  in custom mode, the caller's location / context / tone.
"""

from __future__ import annotations
from typing import List
from .schema import GenerationOptions, Mode

ANALYSIS_PROMPT = (
    "Analyze this image and provide ONLY the following in a structured format:\n"
    "1. Setting: Where was this taken?\n"
    "2. Activity: What's happening in the foreground?\n"
    "3. Subject: Main subject or focus\n"
    "4. People: Number and description if any\n"
    "5. Visual Effects: Lighting, filters, or notable visual elements\n"
    "6. Summary: 50-char or less overview of the photo\n\n"
    "Keep each response brief and focused."
)

DESCRIBE_PROMPT = "Analyze this image in detail and describe what you see."

CAPTION_SYSTEM_MESSAGE = (
    "You are a highly creative caption generator who excels at wordplay, cultural references, "
    "and unexpected connections. Think outside the box and create surprising but relevant "
    "captions that go beyond the obvious."
)

CAPTION_INSTRUCTIONS = """As a creative caption generator, think deeply and generate:
1. A concise, natural caption describing what's likely in the image
2. 5 unique and creative caption ideas that:
   - Play with words and concepts
   - Make unexpected connections
   - Reference pop culture, games, or trends
   - Think about deeper meanings and metaphors
   - Create surprising but relevant analogies
   - Each caption should have its own unique angle or concept
3. For each caption, generate a matching creative hashtag that:
   - Captures the specific theme or concept of that caption
   - Is clever and memorable
   - Combines relevant words in unexpected ways

Format the response as JSON with the following structure:
{
  "mainCaption": "primary description",
  "captionIdeas": [
    {
      "caption": "creative caption text",
      "concept": "brief explanation of the creative concept/reference",
      "hashtag": "matching creative hashtag"
    }
  ]
}"""

def build_caption_prompt(labels: List[str], options: GenerationOptions) -> str:
    labels = list(labels)
    custom = options.mode == Mode.CUSTOM
    if custom:
        labels += [t.strip() for t in options.tags if t and t.strip()]

    prompt = f"Based on the following elements detected in an image: {', '.join(labels)}"

    if custom:
        if options.location:
            prompt += f"\nThe photo was taken at: {options.location}"
        if options.additional_info:
            prompt += f"\nAdditional context: {options.additional_info}"
        if options.tone:
            prompt += f"\nPlease generate the captions in a {options.tone} tone."

    return f"{prompt}\n\n{CAPTION_INSTRUCTIONS}"
