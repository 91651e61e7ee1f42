# core/classifier.py

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Union

from core.content_verifier import ContentVerifier
from core.duplicate_index import DuplicateIndex, FrameRef
from core.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerceptualDuplicate:
    """Enough sampled frames look like frames of an earlier file"""
    owner: str
    score: int
    total: int

    @property
    def is_exact(self) -> bool:
        return False


@dataclass(frozen=True)
class ExactDuplicate:
    """Every frame matched and the bytes are identical"""
    owner: str
    digest: str

    @property
    def is_exact(self) -> bool:
        return True


Verdict = Union[PerceptualDuplicate, ExactDuplicate]


@dataclass
class FileClassification:
    """Outcome of classifying one file against the index"""
    file: str
    frames_hashed: int
    matches: Dict[str, int] = field(default_factory=dict)
    verdicts: List[Verdict] = field(default_factory=list)

    @property
    def is_unique(self) -> bool:
        return not self.verdicts


class DuplicateClassifier:
    """
    Match a file's frame fingerprints against the index, then index them

    For every frame the index is queried first and the frame inserted
    afterwards, so a file only ever matches files processed before it.
    Hits on the file itself are ignored.
    """

    def __init__(self,
                 hamming_threshold: int = 16,
                 match_ratio_threshold: float = 0.6,
                 verifier: Optional[ContentVerifier] = None,
                 count_every_hit: bool = True):
        if hamming_threshold < 0:
            raise ConfigError(f"hamming_threshold must be >= 0, got {hamming_threshold}")
        if not 0.0 <= match_ratio_threshold <= 1.0:
            raise ConfigError(
                f"match_ratio_threshold must be between 0.0 and 1.0, got {match_ratio_threshold}"
            )
        self.hamming_threshold = hamming_threshold
        self.match_ratio_threshold = match_ratio_threshold
        self.verifier = verifier or ContentVerifier()
        # False: a query frame counts at most once, against its first non-self hit
        self.count_every_hit = count_every_hit

    def classify(self,
                 file: str,
                 frame_fingerprints: Iterable[Tuple[int, int]],
                 index: DuplicateIndex) -> FileClassification:
        """
        Classify one file and add its fingerprints to the index

        Args:
            file: Canonical path of the file being classified
            frame_fingerprints: (ordinal, fingerprint) pairs in sample order,
                only for frames that were hashed successfully
            index: Index holding every previously processed file

        Returns:
            FileClassification; no verdicts means the file is unique
        """
        tally = self._tally_and_insert(file, frame_fingerprints, index)
        total = index.frame_count(file)

        result = FileClassification(file=file, frames_hashed=total, matches=tally)
        if total == 0:
            logger.debug("%s has no usable frames, nothing to compare", file)
            return result

        for owner, count in tally.items():
            verdict = self._judge(file, total, owner, count, index)
            if verdict is not None:
                result.verdicts.append(verdict)

        return result

    def _tally_and_insert(self,
                          file: str,
                          frame_fingerprints: Iterable[Tuple[int, int]],
                          index: DuplicateIndex) -> Dict[str, int]:
        tally: Dict[str, int] = {}
        hashed = 0

        for ordinal, fingerprint in frame_fingerprints:
            for ref in index.query_approx(fingerprint, self.hamming_threshold):
                if ref.owner == file:
                    continue
                tally[ref.owner] = tally.get(ref.owner, 0) + 1
                if not self.count_every_hit:
                    break

            index.insert(fingerprint, FrameRef(ordinal, file))
            hashed += 1

        index.register_file(file, hashed)
        return tally

    def _judge(self, file: str, total: int, owner: str, count: int,
               index: DuplicateIndex) -> Optional[Verdict]:
        if count / total < self.match_ratio_threshold:
            return None

        if count >= total:
            digest = self.verifier.identical(file, owner)
            if digest is not None:
                return ExactDuplicate(owner=owner, digest=digest)

        return PerceptualDuplicate(
            owner=owner,
            score=min(total, count),
            total=min(total, index.frame_count(owner)),
        )


def classify(file: str,
             frame_fingerprints: Iterable[Tuple[int, int]],
             index: DuplicateIndex,
             hamming_threshold: int = 16,
             match_ratio_threshold: float = 0.6,
             verifier: Optional[ContentVerifier] = None) -> FileClassification:
    """Classify one file with a throwaway DuplicateClassifier"""
    classifier = DuplicateClassifier(
        hamming_threshold=hamming_threshold,
        match_ratio_threshold=match_ratio_threshold,
        verifier=verifier,
    )
    return classifier.classify(file, frame_fingerprints, index)
