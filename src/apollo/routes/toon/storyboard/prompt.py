from __future__ import annotations

from typing import Any

# JSON schema handed to the text model as ``response_schema``
FINAL_PROMPT_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {
            "type": "STRING",
            "description": "Toon title (short and catchy, Korean, at most 15 characters)",
        },
        "summary": {
            "type": "STRING",
            "description": "Story summary (Korean, 1-2 sentences)",
        },
        "global": {
            "type": "OBJECT",
            "description": "Global style shared by every panel",
            "properties": {
                "artStyle": {
                    "type": "STRING",
                    "description": "Art style (English, e.g. cute chibi webtoon style, soft shading, expressive eyes)",
                },
                "colorPalette": {
                    "type": "STRING",
                    "description": "Color palette (English, e.g. warm pastel colors with pink and orange accents)",
                },
                "cameraRules": {
                    "type": "STRING",
                    "description": "Camera/composition rules (English, e.g. vary between close-up, medium, and wide shots)",
                },
                "typographyRules": {
                    "type": "STRING",
                    "description": "Caption style rules (Korean)",
                },
                "negatives": {
                    "type": "STRING",
                    "description": "Elements to avoid (English, e.g. realistic style, dark colors, complex backgrounds)",
                },
            },
            "required": ["artStyle", "colorPalette", "cameraRules", "typographyRules", "negatives"],
        },
        "panels": {
            "type": "ARRAY",
            "description": "Per-panel prompts",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "index": {"type": "NUMBER", "description": "Panel order, starting at 0"},
                    "scene": {"type": "STRING", "description": "Scene description (Korean)"},
                    "prompt": {
                        "type": "STRING",
                        "description": "Image generation prompt (English). Must include the character's appearance.",
                    },
                    "captionDraft": {
                        "type": "STRING",
                        "description": "Caption draft (Korean, at most 30 characters, dialogue or narration)",
                    },
                },
                "required": ["index", "scene", "prompt", "captionDraft"],
            },
        },
    },
    "required": ["title", "summary", "global", "panels"],
}


def build_system_prompt(character_sheet_text: str, panel_count: int) -> str:
    return f"""You are an expert webtoon/instagram toon storyboard creator.
Your task is to transform a diary entry into a {panel_count}-panel comic storyboard.

IMPORTANT CHARACTER INFORMATION (MUST FOLLOW EXACTLY):
{character_sheet_text.strip()}

RULES:
1. Create exactly {panel_count} panels, indexed 0 to {panel_count - 1}
2. Each panel must feature the character described above CONSISTENTLY
3. The prompt of every panel MUST include the character's physical description
4. Keep caption drafts short and punchy (Korean, under 30 characters)
5. Vary compositions: close-up, medium shot, wide shot
6. Add visual humor and exaggeration appropriate for instagram toons
7. The style should be consistent across all panels

OUTPUT FORMAT: Return a valid JSON object matching the schema."""


def build_user_prompt(diary_text: str, panel_count: int, has_references: bool) -> str:
    reference_line = (
        "\nThe attached images show the character. Describe that exact appearance in every panel prompt.\n"
        if has_references
        else ""
    )
    return f"""Transform this diary entry into a {panel_count}-panel instagram toon:

\"\"\"
{diary_text.strip()}
\"\"\"
{reference_line}
Create a storyboard that captures the essence and emotion of this diary entry in a cute, relatable webtoon style."""
