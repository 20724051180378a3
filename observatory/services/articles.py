from dataclasses import dataclass
from pathlib import PurePosixPath

from observatory.core.exceptions import MalformedPath

ORIGINAL_LANGUAGE = "en"
ARTICLE_EXTENSION = ".md"


@dataclass(frozen=True, order=True)
class Article:
    """A localized article file: the directory is the article, the stem is the language"""

    path: str
    language: str

    @classmethod
    def from_path(cls, file_path: str) -> "Article":
        fp = PurePosixPath(file_path)
        parent = str(fp.parent)
        if not file_path or not fp.stem or fp.stem.startswith(".") or parent in (".", "/"):
            raise MalformedPath(file_path)
        return cls(path=parent, language=fp.stem)

    def file_path(self) -> str:
        return f"{self.path}/{self.language}{ARTICLE_EXTENSION}"

    def is_original(self) -> bool:
        return self.language == ORIGINAL_LANGUAGE

    def is_translation(self) -> bool:
        return not self.is_original()
