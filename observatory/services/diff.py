import logging
from typing import List

from unidiff import PatchSet, PatchedFile
from unidiff.errors import UnidiffParseError

from observatory.core.exceptions import DiffParseError
from observatory.services.articles import ARTICLE_EXTENSION

logger = logging.getLogger(__name__)


def parse_diff(text: str) -> PatchSet:
    """Parse a unified diff as served by github.com/{repo}/pull/{n}.diff"""
    try:
        return PatchSet.from_string(text)
    except UnidiffParseError as e:
        logger.error(f"Failed to parse diff: {e}")
        raise DiffParseError(str(e)) from e


def article_files(diff: PatchSet) -> List[PatchedFile]:
    """Changed files whose target is an article. Deleted files target /dev/null and are skipped."""
    return [f for f in diff if f.target_file.endswith(ARTICLE_EXTENSION)]
