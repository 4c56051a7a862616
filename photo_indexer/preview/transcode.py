import sys
import shutil
import subprocess
from pathlib import Path

from ..exceptions import TranscodeError


class Transcoder:
    """
    Converts an image the display layer cannot embed into a JPEG file.
    convert() raises TranscodeError on any failure.
    """
    name = "base"

    @property
    def available(self) -> bool:
        return True

    def convert(self, source: Path, destination: Path) -> None:
        raise NotImplementedError

    def _run(self, cmd: list, destination: Path) -> None:
        try:
            subprocess.run(cmd, check=True, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or b"").decode('utf-8', errors='replace').strip()
            raise TranscodeError(f"{self.name} exited with {e.returncode}: {detail}") from e
        except OSError as e:
            raise TranscodeError(f"{self.name} could not be started: {e}") from e

        if not destination.is_file():
            raise TranscodeError(f"{self.name} produced no output at {destination}")


class NullTranscoder(Transcoder):
    """Used where no conversion utility exists; never attempted."""
    name = "null"

    @property
    def available(self) -> bool:
        return False

    def convert(self, source: Path, destination: Path) -> None:
        raise TranscodeError("No image transcoder available on this platform")


class SipsTranscoder(Transcoder):
    """macOS 'sips' (scriptable image processing system)."""
    name = "sips"

    @property
    def available(self) -> bool:
        return sys.platform == 'darwin'

    def convert(self, source: Path, destination: Path) -> None:
        self._run(["sips", "-s", "format", "jpeg", str(source), "--out", str(destination)], destination)


class HeifConvertTranscoder(Transcoder):
    """libheif's 'heif-convert', found on many Linux installs."""
    name = "heif-convert"

    @property
    def available(self) -> bool:
        return shutil.which("heif-convert") is not None

    def convert(self, source: Path, destination: Path) -> None:
        self._run(["heif-convert", "-q", "90", str(source), str(destination)], destination)


def default_transcoder() -> Transcoder:
    for candidate in (SipsTranscoder(), HeifConvertTranscoder()):
        if candidate.available:
            return candidate
    return NullTranscoder()
