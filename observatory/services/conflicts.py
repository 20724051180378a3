"""Detection of article-level conflicts between two pull requests"""

import logging
from collections import defaultdict
from typing import Dict, List

from unidiff import PatchSet

from observatory.core.exceptions import MalformedPath, PreconditionViolation
from observatory.schemas.conflict import Conflict
from observatory.schemas.github import PullRequest
from observatory.services.articles import Article
from observatory.services.diff import article_files

logger = logging.getLogger(__name__)


def _articles(diff: PatchSet) -> List[Article]:
    articles = []
    for patched_file in article_files(diff):
        try:
            articles.append(Article.from_path(patched_file.path))
        except MalformedPath:
            # Top-level markdown files (README.md etc.) are not articles
            logger.debug(f"Skipping non-article file {patched_file.path}")
    return articles


def compare_pulls(new_pull: PullRequest, other_pull: PullRequest) -> List[Conflict]:
    """
    Compare two pulls and pinpoint conflicts between them on article level.

    Both pulls must have a diff attached. The returned conflicts are sorted and
    each of them lists its files sorted and without duplicates.
    """
    if new_pull.diff is None or other_pull.diff is None:
        raise PreconditionViolation(
            f"Cannot compare #{new_pull.number} with #{other_pull.number}: diff not attached"
        )

    # Bucket the other pull's articles by directory; different folders never conflict.
    others: Dict[str, List[Article]] = defaultdict(list)
    for article in _articles(other_pull.diff):
        others[article.path].append(article)

    overlaps = set()
    originals = set()
    translations = set()

    for incoming in _articles(new_pull.diff):
        for other in others.get(incoming.path, []):
            if incoming == other:
                overlaps.add(incoming.file_path())
            elif incoming.is_original() and other.is_translation():
                originals.add(incoming.file_path())
            elif incoming.is_translation() and other.is_original():
                translations.add(incoming.file_path())

    out = []
    if overlaps:
        out.append(
            Conflict.existing_change(
                new_pull.number, other_pull.number, other_pull.html_url, sorted(overlaps)
            )
        )
    if originals:
        out.append(
            Conflict.new_original_change(
                other_pull.number, new_pull.number, new_pull.html_url, sorted(originals)
            )
        )
    if translations:
        out.append(
            Conflict.existing_original_change(
                new_pull.number, other_pull.number, other_pull.html_url, sorted(translations)
            )
        )
    return sorted(out)
