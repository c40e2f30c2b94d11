"""Media transcoding through an external ffmpeg process.

Supported options:
    offset       start position in the source, "HH:MM:SS.fff" or seconds
    duration     length of the output, same format
    video_codec  ffmpeg video encoder name, e.g. "libx264"
    audio_codec  ffmpeg audio encoder name, e.g. "aac"

ffmpeg picks the container from the target file extension, which is derived
from the target media type.
"""

import json
import mimetypes
import re
import subprocess
from collections import deque
from collections.abc import Mapping
from pathlib import Path

from content_node.content.models import ContentReference
from content_node.logging.logger import Log
from content_node.node.reporter import ProgressReporter
from content_node.storage.base import BaseContentReferenceHandler
from content_node.tempfiles.provider import TempFileProvider
from content_node.transform.base import BaseTransformerWorker
from content_node.transform.exceptions import ArgumentInvalidError, TransformationFailure

SUPPORTED_OPTIONS = frozenset({"offset", "duration", "video_codec", "audio_codec"})
_OUTPUT_TAIL_CHARS = 2000
_OUTPUT_TAIL_LINES = 50
PROBE_TIMEOUT_SECONDS = 10
# -progress emits key=value lines; everything else is diagnostic output.
_PROGRESS_LINE = re.compile(r"^\w+=")


def parse_timestamp(value: str) -> float:
    """Convert "HH:MM:SS.fff", "MM:SS" or plain seconds into seconds."""
    try:
        seconds = 0.0
        for part in value.strip().split(":"):
            seconds = seconds * 60 + float(part)
    except ValueError as exc:
        raise ArgumentInvalidError(f"Invalid timestamp '{value}'") from exc
    if seconds < 0:
        raise ArgumentInvalidError(f"Timestamp must not be negative: '{value}'")
    return seconds


def media_type_extension(media_type: str) -> str | None:
    return mimetypes.guess_extension(media_type.split(";")[0].strip(), strict=False)


def build_command(
    ffmpeg_path: str, source: Path, target: Path, options: Mapping[str, str]
) -> list[str]:
    cmd = [ffmpeg_path, "-y", "-nostdin", "-hide_banner", "-loglevel", "error"]
    if options.get("offset"):
        parse_timestamp(options["offset"])
        cmd += ["-ss", options["offset"]]
    cmd += ["-i", str(source)]
    if options.get("duration"):
        parse_timestamp(options["duration"])
        cmd += ["-t", options["duration"]]
    if options.get("video_codec"):
        cmd += ["-c:v", options["video_codec"]]
    if options.get("audio_codec"):
        cmd += ["-c:a", options["audio_codec"]]
    cmd += ["-progress", "pipe:1", "-nostats", str(target)]
    return cmd


class FfmpegTransformerWorker(BaseTransformerWorker):
    """Transcodes or trims media between any two content references."""

    def __init__(
        self,
        handler: BaseContentReferenceHandler,
        temp_files: TempFileProvider,
        ffmpeg_path: str = "ffmpeg",
        ffprobe_path: str = "ffprobe",
    ) -> None:
        self._handler = handler
        self._temp_files = temp_files
        self._ffmpeg_path = ffmpeg_path
        self._ffprobe_path = ffprobe_path

    def transform(
        self,
        source: ContentReference,
        target: ContentReference,
        options: Mapping[str, str],
        reporter: ProgressReporter,
    ) -> None:
        unknown = sorted(set(options) - SUPPORTED_OPTIONS)
        if unknown:
            Log.warning(f"Ignoring unsupported ffmpeg options: {unknown}")
        target_suffix = media_type_extension(target.media_type)
        if not target_suffix:
            raise ArgumentInvalidError(
                f"No output format known for media type '{target.media_type}'"
            )

        reporter.on_progress(0.0)
        source_path = self._temp_files.materialize_stream(
            self._handler.read(source),
            "ffmpeg_source_",
            media_type_extension(source.media_type) or ".bin",
        )
        target_path: Path | None = None
        try:
            target_path = self._temp_files.new_temp_file("ffmpeg_target_", target_suffix)
            command = build_command(self._ffmpeg_path, source_path, target_path, options)
            self._run(command, self._expected_duration(source_path, options), reporter)
            self._handler.write_file(target_path, target)
        finally:
            source_path.unlink(missing_ok=True)
            if target_path is not None:
                target_path.unlink(missing_ok=True)
        reporter.on_progress(1.0)
        Log.info(
            f"Transcoded {source.uri} ({source.media_type}) "
            f"to {target.uri} ({target.media_type})"
        )

    def _run(
        self, command: list[str], total_seconds: float | None, reporter: ProgressReporter
    ) -> None:
        """Run ffmpeg, forwarding its progress until it exits.

        stderr is merged into stdout so a single reader drains both pipes.
        The child is killed if reporting fails.
        """
        Log.debug(f"Running: {' '.join(command)}")
        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise TransformationFailure(f"Cannot start {self._ffmpeg_path}: {exc}") from exc

        output_tail: deque[str] = deque(maxlen=_OUTPUT_TAIL_LINES)
        with process:
            assert process.stdout is not None
            try:
                for line in process.stdout:
                    if _PROGRESS_LINE.match(line):
                        fraction = _progress_fraction(line, total_seconds)
                        if fraction is not None:
                            reporter.on_progress(fraction)
                    elif line.strip():
                        output_tail.append(line.rstrip())
            except BaseException:
                process.kill()
                raise
            returncode = process.wait()

        if returncode != 0:
            detail = "\n".join(output_tail)[-_OUTPUT_TAIL_CHARS:]
            raise TransformationFailure(f"ffmpeg failed with code {returncode}: {detail}")

    def _expected_duration(self, source_path: Path, options: Mapping[str, str]) -> float | None:
        if options.get("duration"):
            return parse_timestamp(options["duration"])
        source_duration = self._probe_duration(source_path)
        if source_duration is None:
            return None
        offset = parse_timestamp(options["offset"]) if options.get("offset") else 0.0
        return max(source_duration - offset, 0.0) or None

    def _probe_duration(self, path: Path) -> float | None:
        """Source duration in seconds from ffprobe, None if it cannot be determined."""
        try:
            result = subprocess.run(
                [
                    self._ffprobe_path,
                    "-v", "quiet",
                    "-print_format", "json",
                    "-show_format",
                    str(path),
                ],
                capture_output=True,
                text=True,
                check=True,
                timeout=PROBE_TIMEOUT_SECONDS,
            )
            return float(json.loads(result.stdout)["format"]["duration"])
        except (
            OSError,
            subprocess.CalledProcessError,
            subprocess.TimeoutExpired,
            ValueError,
            KeyError,
        ) as exc:
            Log.debug(f"Could not probe duration of {path}: {exc}")
            return None


def _progress_fraction(line: str, total_seconds: float | None) -> float | None:
    """Fraction done from an ffmpeg -progress line, None for other lines."""
    if not total_seconds:
        return None
    key, _, value = line.strip().partition("=")
    # ffmpeg reports out_time_ms in microseconds.
    if key != "out_time_ms":
        return None
    try:
        elapsed = int(value) / 1_000_000
    except ValueError:
        return None
    return min(max(elapsed / total_seconds, 0.0), 1.0)
