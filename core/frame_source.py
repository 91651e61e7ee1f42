# core/frame_source.py

import logging
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import cv2
import numpy as np

from core.errors import ConfigError, ExternalToolError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VideoMetadata:
    duration: float = 0.0
    bit_rate: int = 0


@dataclass(frozen=True)
class SampledFrame:
    """One still image taken from a video; image is JPEG bytes or a BGR array"""
    ordinal: int
    image: Union[bytes, np.ndarray]


@dataclass
class SampleResult:
    metadata: VideoMetadata
    frames: List[SampledFrame] = field(default_factory=list)


def sample_timestamps(duration: float, frame_count: int) -> List[float]:
    """
    Seconds at which to grab frames

    Sampling starts after the first tenth of the video and spreads
    frame_count grabs over roughly two thirds of it.
    """
    if frame_count <= 0:
        return []
    duration = max(0.0, duration)
    start = duration / 10
    step = duration / (frame_count * 1.5)
    return [start + i * step for i in range(frame_count)]


def parse_show_format(output: str) -> VideoMetadata:
    """Read duration and bit_rate out of `ffprobe -show_format` output"""
    duration = 0.0
    bit_rate = 0
    for line in output.splitlines():
        key, _, value = line.strip().partition('=')
        try:
            if key == 'duration':
                duration = float(value)
            elif key == 'bit_rate':
                bit_rate = int(value)
        except ValueError:
            continue
    return VideoMetadata(duration=duration, bit_rate=bit_rate)


class FfmpegFrameSource:
    """
    Grab frames by running ffmpeg once per timestamp
    """

    def __init__(self,
                 ffmpeg_path: str = "ffmpeg",
                 ffprobe_path: str = "ffprobe",
                 timeout_seconds: float = 60,
                 scale_width: int = 128):
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.timeout_seconds = timeout_seconds
        self.scale_width = scale_width

    def check_available(self):
        """Raise ExternalToolError unless both ffmpeg and ffprobe run"""
        for tool in (self.ffmpeg_path, self.ffprobe_path):
            self._run(tool, [tool, "-version"])

    def probe(self, video_path: str) -> VideoMetadata:
        result = self._run(self.ffprobe_path,
                           [self.ffprobe_path, "-i", video_path, "-show_format"])
        if result.returncode != 0:
            logger.warning("ffprobe could not read %s", video_path)
        return parse_show_format(result.stdout.decode('utf-8', errors='replace'))

    def extract(self, video_path: str, frame_count: int) -> SampleResult:
        """
        Probe the video and grab frame_count frames

        Frames ffmpeg fails to write are left out; the ordinal of every
        returned frame is its position in the requested sample order.
        """
        metadata = self.probe(video_path)
        result = SampleResult(metadata=metadata)

        with tempfile.TemporaryDirectory(prefix="xray-") as tmp_dir:
            for ordinal, timestamp in enumerate(sample_timestamps(metadata.duration, frame_count)):
                image = self._grab_frame(video_path, timestamp, Path(tmp_dir), ordinal)
                if image is not None:
                    result.frames.append(SampledFrame(ordinal, image))

        return result

    def sample_frames(self, video_path: str, frame_count: int) -> List[SampledFrame]:
        return self.extract(video_path, frame_count).frames

    def _grab_frame(self, video_path: str, timestamp: float,
                    tmp_dir: Path, ordinal: int) -> Optional[bytes]:
        output = tmp_dir / f"{ordinal}.jpg"
        args = [
            self.ffmpeg_path,
            "-ss", f"{timestamp:.3f}",
            "-i", video_path,
            "-y",
            "-f", "image2",
            "-vcodec", "mjpeg",
            "-vframes", "1",
            "-vf", f"scale={self.scale_width}:-1",
            output.name,
        ]
        self._run(self.ffmpeg_path, args, cwd=tmp_dir)

        if not output.is_file():
            logger.debug("No frame written for %s at %.3fs", video_path, timestamp)
            return None

        data = output.read_bytes()
        output.unlink()
        return data or None

    def _run(self, tool: str, args: List[str], cwd: Optional[Path] = None):
        try:
            return subprocess.run(
                args,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout_seconds,
            )
        except FileNotFoundError:
            raise ExternalToolError(tool, "not found in PATH")
        except subprocess.TimeoutExpired:
            raise ExternalToolError(tool, f"no response within {self.timeout_seconds}s")


class OpenCVFrameSource:
    """
    Grab frames in-process with cv2.VideoCapture

    No external program is involved, so this source never raises
    ExternalToolError; a file OpenCV cannot open has no frames.
    """

    def __init__(self, scale_width: int = 128):
        self.scale_width = scale_width

    def check_available(self):
        pass

    def extract(self, video_path: str, frame_count: int) -> SampleResult:
        cap = cv2.VideoCapture(video_path)
        if not cap.isOpened():
            logger.warning("OpenCV cannot open video: %s", video_path)
            return SampleResult(metadata=VideoMetadata())

        try:
            metadata = self._metadata(cap)
            result = SampleResult(metadata=metadata)

            for ordinal, timestamp in enumerate(sample_timestamps(metadata.duration, frame_count)):
                cap.set(cv2.CAP_PROP_POS_MSEC, timestamp * 1000.0)
                ret, frame = cap.read()
                if not ret or frame is None:
                    continue
                result.frames.append(SampledFrame(ordinal, self._scale(frame)))

            return result
        finally:
            cap.release()

    def sample_frames(self, video_path: str, frame_count: int) -> List[SampledFrame]:
        return self.extract(video_path, frame_count).frames

    def _metadata(self, cap: cv2.VideoCapture) -> VideoMetadata:
        fps = cap.get(cv2.CAP_PROP_FPS)
        total_frames = cap.get(cv2.CAP_PROP_FRAME_COUNT)
        duration = total_frames / fps if fps > 0 else 0.0
        bit_rate = int(cap.get(cv2.CAP_PROP_BITRATE) or 0) * 1000
        return VideoMetadata(duration=duration, bit_rate=bit_rate)

    def _scale(self, frame: np.ndarray) -> np.ndarray:
        h, w = frame.shape[:2]
        if w <= self.scale_width:
            return frame
        new_h = max(1, int(h * self.scale_width / w))
        return cv2.resize(frame, (self.scale_width, new_h), interpolation=cv2.INTER_AREA)


def create_frame_source(backend: str = "ffmpeg", **kwargs):
    """Build the frame source named by backend ('ffmpeg' or 'opencv')"""
    if backend == "ffmpeg":
        return FfmpegFrameSource(**kwargs)
    if backend == "opencv":
        return OpenCVFrameSource(scale_width=kwargs.get('scale_width', 128))
    raise ConfigError(f"Unknown frame source backend: {backend}")
