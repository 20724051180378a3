"""Markdown bodies for conflict notifications"""

from typing import Dict

from observatory.schemas.conflict import Conflict, ConflictType

MAX_LISTED_FILES = 10

HEADERS: Dict[ConflictType, str] = {
    ConflictType.EXISTING_CHANGE: "Files in this pull request are also changed in #{pull_number}",
    ConflictType.NEW_ORIGINAL_CHANGE: "The original article is being changed in #{pull_number}",
    ConflictType.EXISTING_ORIGINAL_CHANGE: "The original of this translation is being changed in #{pull_number}",
}

TEMPLATES: Dict[ConflictType, str] = {
    ConflictType.EXISTING_CHANGE: (
        "Another open pull request changes the same article files. "
        "Please coordinate with its author and resolve any conflicts once it is merged."
    ),
    ConflictType.NEW_ORIGINAL_CHANGE: (
        "A newer pull request changes the English original of an article translated here. "
        "Please follow it and bring the translation up to date once it is merged."
    ),
    ConflictType.EXISTING_ORIGINAL_CHANGE: (
        "The English original of an article translated here has pending changes in an open pull request. "
        "Please follow it and update the translation to match once it is merged."
    ),
}


def render_header(conflict: Conflict) -> str:
    return "**" + HEADERS[conflict.kind].format(pull_number=conflict.original) + "**"


def render_conflict(conflict: Conflict) -> str:
    lines = [render_header(conflict), "", TEMPLATES[conflict.kind], ""]

    if len(conflict.file_set) > MAX_LISTED_FILES:
        lines.append(f"- {conflict.reference_url} (>{MAX_LISTED_FILES} files)")
    else:
        indent = "  "
        lines.append(f"- {conflict.reference_url}, files:")
        lines.append(f"{indent}```")
        lines.extend(f"{indent}{file}" for file in conflict.file_set)
        lines.append(f"{indent}```")

    return "\n".join(lines)
