"""
Prompt templates for version extraction.
"""

from dataclasses import dataclass
from typing import Any

CATEGORIES: tuple[str, ...] = (
    "Audio Production",
    "Video Production",
    "Presentation & Playback",
    "Lighting Control",
    "Show Control",
    "Design & Planning",
    "Network & Control",
    "Project Management",
)

# Content shorter than this is treated as not fetched
MIN_CONTENT_CHARS = 100


@dataclass
class PromptTemplate:
    """
    A reusable prompt template with variable substitution.

    Example:
        >>> template = PromptTemplate(name="x", system="Be exact.", user="Read {text}")
        >>> template.format_user(text="...")
        'Read ...'
    """

    name: str
    system: str
    user: str

    def format(self, **kwargs: Any) -> dict[str, str]:
        return {
            "system": self.system.format(**kwargs) if kwargs else self.system,
            "user": self.user.format(**kwargs) if kwargs else self.user,
        }

    def format_user(self, **kwargs: Any) -> str:
        return self.user.format(**kwargs) if kwargs else self.user


_CATEGORY_LIST = "\n".join(f"   - {category}" for category in CATEGORIES)

EXTRACT_VERSIONS = PromptTemplate(
    name="extract_versions",
    system=(
        "You are a software release analyst. You extract version numbers, "
        "release dates and release notes from vendor pages and return only valid JSON. "
        "You never invent a release date: if a date is not stated next to a version, "
        "use null."
    ),
    user=(
        "Software Details:\n"
        "- Name: {name}\n"
        "- Website: {website}\n"
        "- Version URL: {version_url}\n"
        "{description_line}"
        "\n"
        "{content_sections}"
        "TASK: Extract the following information:\n\n"
        "1. manufacturer: The company that makes this software\n"
        "2. category: Choose EXACTLY ONE from this list:\n"
        f"{_CATEGORY_LIST}\n"
        "3. currentVersion: The latest version number of {name} (e.g. \"2.1.3\", \"2024.1\"), or null\n"
        "4. releaseDate: Release date of the current version as YYYY-MM-DD, or null\n"
        "5. versions: Every release of {name} on the page, newest first, each with\n"
        "   version, releaseDate (YYYY-MM-DD or null), notes (markdown) and\n"
        "   type (major, minor or patch)\n"
        "6. confidence: 0-100, how sure you are the versions belong to {name}\n"
        "7. productNameFound: true if {name} is named in the content\n"
        "8. validationNotes: anything a reviewer should check\n\n"
        "IMPORTANT INSTRUCTIONS:\n"
        "- Only report versions of {name}, not of sibling products on the same page\n"
        "- Look for patterns like \"Version 1.2.3\", \"v1.2.3\", \"Release 1.2.3\", \"1.2.3 released\"\n"
        "- Never guess a release date; use null when none is stated\n"
        "- Use null (not an empty string) for anything you cannot find\n"
        "- For category, use the exact name from the list (case-sensitive)\n\n"
        "Respond in JSON format:\n"
        "{{\n"
        "  \"manufacturer\": \"Company Name\",\n"
        "  \"category\": \"Exact Category Name\",\n"
        "  \"currentVersion\": \"version number or null\",\n"
        "  \"releaseDate\": \"YYYY-MM-DD or null\",\n"
        "  \"versions\": [{{\"version\": \"1.2.3\", \"releaseDate\": null, \"notes\": \"...\", \"type\": \"patch\"}}],\n"
        "  \"confidence\": 90,\n"
        "  \"productNameFound\": true,\n"
        "  \"validationNotes\": \"...\"\n"
        "}}"
    ),
)

NO_CONTENT_NOTE = (
    "Note: Unable to fetch content from either URL. Use what you know about "
    "this software, and return null for anything you are not certain of.\n\n"
)


def build_extraction_prompt(
    name: str,
    website: str,
    version_url: str,
    version_content: str,
    main_content: str = "",
    description: str | None = None,
) -> dict[str, str]:
    """
    Assemble the system and user prompt for one product.

    Content blocks shorter than 100 characters are left out.
    """
    sections = ""
    if len(version_content) > MIN_CONTENT_CHARS:
        sections += f"Version Page Content (from {version_url}):\n{version_content}\n\n"
    if len(main_content) > MIN_CONTENT_CHARS:
        sections += f"Main Website Content (from {website}):\n{main_content}\n\n"
    if not sections:
        sections = NO_CONTENT_NOTE

    return EXTRACT_VERSIONS.format(
        name=name,
        website=website,
        version_url=version_url,
        description_line=f"- Description: {description}\n" if description else "",
        content_sections=sections,
    )
