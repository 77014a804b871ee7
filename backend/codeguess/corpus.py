"""Static snippet corpus: the ground truth every session is drawn from."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

MAX_DISTRACTORS = 3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snippet:
    code: str
    language: str
    distractors: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Snippet':
        code = data.get('code')
        language = data.get('language')
        if not isinstance(code, str) or not code.strip():
            raise ValueError('snippet code is required')
        if not isinstance(language, str) or not language.strip():
            raise ValueError('snippet language is required')
        language = language.strip()
        distractors = []
        for d in data.get('distractors') or []:
            if isinstance(d, str) and d.strip() and d.strip() != language and d.strip() not in distractors:
                distractors.append(d.strip())
        return cls(code=code, language=language, distractors=tuple(distractors[:MAX_DISTRACTORS]))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'language': self.language,
            'distractors': list(self.distractors),
        }


@dataclass(frozen=True)
class SnippetCorpus:
    snippets: Tuple[Snippet, ...] = ()
    source: Optional[str] = None
    languages: FrozenSet[str] = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'languages', frozenset(s.language for s in self.snippets))

    def __len__(self) -> int:
        return len(self.snippets)

    def __iter__(self):
        return iter(self.snippets)

    @property
    def is_empty(self) -> bool:
        return not self.snippets


def parse_snippets(entries: Iterable[Any]) -> List[Snippet]:
    snippets = []
    for idx, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning(f"[corpus] skipping entry {idx}: not an object")
            continue
        try:
            snippets.append(Snippet.from_dict(entry))
        except ValueError as exc:
            logger.warning(f"[corpus] skipping entry {idx}: {exc}")
    return snippets


def load_corpus(path: str) -> SnippetCorpus:
    """Load the corpus file at ``path``.

    Never raises: a missing, unreadable or malformed file yields an empty
    corpus, which the session manager reports as a configuration fault.
    """
    try:
        with open(path, encoding='utf-8') as fh:
            raw = json.load(fh)
    except FileNotFoundError:
        logger.warning(f"[corpus] snippets file not found at {path}")
        return SnippetCorpus(source=path)
    except (OSError, ValueError) as exc:
        logger.error(f"[corpus] failed to read {path}: {exc}")
        return SnippetCorpus(source=path)

    if not isinstance(raw, list):
        logger.error(f"[corpus] {path} must contain a JSON array of snippets")
        return SnippetCorpus(source=path)

    corpus = SnippetCorpus(snippets=tuple(parse_snippets(raw)), source=path)
    if corpus.is_empty:
        logger.warning(f"[corpus] {path} contains no usable snippets")
    else:
        logger.info(f"[corpus] loaded {len(corpus)} snippets ({len(corpus.languages)} languages) from {path}")
    return corpus
