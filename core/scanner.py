# core/scanner.py

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from tqdm import tqdm

from config import SystemConfig
from core.classifier import DuplicateClassifier, FileClassification
from core.content_verifier import ContentVerifier
from core.duplicate_index import DuplicateIndex
from core.errors import ExternalToolError
from core.fingerprint import PerceptualHasher
from core.frame_source import SampleResult, VideoMetadata, create_frame_source
from utils.file_utils import list_video_files
from utils.logging_config import ScanLogger

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Everything known about one file after it has been classified"""
    path: str
    size: int
    metadata: VideoMetadata
    frames_requested: int
    classification: FileClassification

    @property
    def verdicts(self):
        return self.classification.verdicts


@dataclass
class ScanSummary:
    files_indexed: int = 0
    frames_indexed: int = 0
    empty_files: int = 0
    exact_duplicates: int = 0
    perceptual_duplicates: int = 0
    duplicate_files: List[str] = field(default_factory=list)

    def add(self, result: ScanResult):
        self.files_indexed += 1
        self.frames_indexed += result.classification.frames_hashed
        if result.classification.frames_hashed == 0:
            self.empty_files += 1
        for verdict in result.verdicts:
            if verdict.is_exact:
                self.exact_duplicates += 1
            else:
                self.perceptual_duplicates += 1
        if result.verdicts:
            self.duplicate_files.append(result.path)


class DuplicateScanner:
    """
    Sample -> hash -> classify-and-insert pipeline over a directory tree

    With n_workers > 1 frame extraction and hashing run on a thread pool,
    but results are consumed in walk order, so the index is queried and
    extended one file at a time exactly as in a sequential run.
    """

    def __init__(self,
                 config: Optional[SystemConfig] = None,
                 frame_source=None,
                 hasher: Optional[PerceptualHasher] = None,
                 classifier: Optional[DuplicateClassifier] = None,
                 index: Optional[DuplicateIndex] = None,
                 show_progress: bool = True):
        self.config = config or SystemConfig()
        sampling = self.config.frame_sampling
        matching = self.config.matching

        self.frame_source = frame_source or create_frame_source(
            sampling.backend,
            ffmpeg_path=sampling.ffmpeg_path,
            ffprobe_path=sampling.ffprobe_path,
            timeout_seconds=sampling.timeout_seconds,
            scale_width=sampling.scale_width,
        )
        self.hasher = hasher or PerceptualHasher()
        self.classifier = classifier or DuplicateClassifier(
            hamming_threshold=matching.hamming_threshold,
            match_ratio_threshold=matching.match_ratio_threshold,
            verifier=ContentVerifier(matching.digest_algorithm),
            count_every_hit=matching.count_every_hit,
        )
        self.verifier = self.classifier.verifier
        self.index = index if index is not None else DuplicateIndex(self.hasher.distance)
        self.show_progress = show_progress
        self.summary = ScanSummary()
        self.scan_logger = ScanLogger()

    def scan(self, root: str) -> Iterator[ScanResult]:
        """
        Scan a directory tree, yielding one ScanResult per video file

        Raises:
            ExternalToolError: frame extraction tool missing or hung
        """
        self.frame_source.check_available()

        video_paths = list_video_files(root, self.config.scan.extensions)
        logger.info("Found %d video files below %s", len(video_paths), root)

        for path, sample in tqdm(self._samples(video_paths),
                                 total=len(video_paths),
                                 desc="Indexing videos",
                                 disable=not self.show_progress):
            yield self._classify(path, sample)

        self.scan_logger.log_operation(
            'scan_complete',
            root=root,
            files=self.summary.files_indexed,
            frames=self.summary.frames_indexed,
            exact=self.summary.exact_duplicates,
            perceptual=self.summary.perceptual_duplicates,
        )

    def process_file(self, path: str) -> ScanResult:
        """Sample, hash and classify a single file against the current index"""
        return self._classify(path, self.fingerprint_file(path))

    def fingerprint_file(self, path: str) -> Tuple[VideoMetadata, List[Tuple[int, int]]]:
        """
        Sample frames of one video and fingerprint them

        Frames that cannot be hashed are dropped. A file that cannot be
        sampled at all yields no fingerprints; only a broken extraction
        tool is raised.
        """
        frame_count = self.config.frame_sampling.frame_count
        try:
            sample = self.frame_source.extract(path, frame_count)
        except ExternalToolError:
            raise
        except (OSError, ValueError) as e:
            logger.warning("Cannot sample frames from %s: %s", path, e)
            sample = SampleResult(metadata=VideoMetadata())

        fingerprints = []
        for frame in sample.frames:
            fingerprint = self.hasher.fingerprint(frame.image)
            if fingerprint is None:
                logger.debug("Skipping unhashable frame %d of %s", frame.ordinal, path)
                continue
            fingerprints.append((frame.ordinal, fingerprint))

        if not fingerprints:
            logger.warning("No usable frames in %s", path)
        elif len(fingerprints) < frame_count:
            logger.info("Only %d of %d frames usable in %s",
                        len(fingerprints), frame_count, path)

        return sample.metadata, fingerprints

    def _samples(self, video_paths: List[str]):
        if self.config.n_workers <= 1:
            for path in video_paths:
                yield path, self.fingerprint_file(path)
            return

        executor = ThreadPoolExecutor(max_workers=self.config.n_workers)
        try:
            for path, sample in zip(video_paths, executor.map(self.fingerprint_file, video_paths)):
                yield path, sample
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def _classify(self, path: str,
                  sample: Tuple[VideoMetadata, List[Tuple[int, int]]]) -> ScanResult:
        metadata, fingerprints = sample
        classification = self.classifier.classify(path, fingerprints, self.index)

        result = ScanResult(
            path=path,
            size=self.verifier.file_size(path),
            metadata=metadata,
            frames_requested=self.config.frame_sampling.frame_count,
            classification=classification,
        )
        self.summary.add(result)

        self.scan_logger.log_operation(
            'file_indexed',
            level=logging.DEBUG,
            path=path,
            frames=classification.frames_hashed,
            index_size=len(self.index),
        )
        for verdict in classification.verdicts:
            self.scan_logger.log_operation(
                'duplicate_found',
                path=path,
                owner=verdict.owner,
                exact=verdict.is_exact,
            )

        return result
