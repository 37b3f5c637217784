"""
Frame writing component.

Writes each frame of a GifData container as its own PNG file and owns the
naming rules for unpacked frames: ``{output_dir}/{base_name}_{index}.png``.
"""

import os
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import urlparse

from . import ChainComponent, GifData, WriteError, ProgressReporter
from .openx import SourceOrigin, select_origin


FRAME_EXTENSION = ".png"
REMOTE_OUTPUT_DIR = Path("output")
FALLBACK_BASE_NAME = "frame"


def base_name_for(identifier: str) -> str:
    """
    Derive the frame file prefix from a source identifier.

    The last extension is dropped from the basename. For URLs the basename is
    taken from the URL path, ignoring any query string.
    """
    if select_origin(identifier) is SourceOrigin.REMOTE_URL:
        name = os.path.basename(urlparse(identifier).path)
    else:
        name = os.path.basename(identifier)
    stem, _ = os.path.splitext(name)
    return stem or FALLBACK_BASE_NAME


def frame_path(output_dir: Union[str, Path], base_name: str, index: int) -> Path:
    return Path(output_dir) / f"{base_name}_{index}{FRAME_EXTENSION}"


def resolve_output_dir(explicit: Optional[Union[str, Path]], identifier: str,
                       origin: SourceOrigin) -> Path:
    """Pick where unpacked frames go when no directory was given."""
    if explicit:
        return Path(explicit)
    if origin is SourceOrigin.LOCAL_FILE:
        return Path(os.path.dirname(identifier) or ".")
    return REMOTE_OUTPUT_DIR


def ensure_output_dir(output_dir: Path) -> Path:
    """Create the directory and its parents; an existing non-directory is fatal."""
    details = {'operation': 'mkdir', 'path': str(output_dir)}
    if output_dir.exists() and not output_dir.is_dir():
        raise WriteError(f"Output path exists and is not a directory: {output_dir}", details=details)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WriteError(f"Failed creating directory '{output_dir}': {e}", details=details) from e
    return output_dir


class FrameWriter(ChainComponent):
    """
    Component for writing frames as numbered PNG files.

    Fails fast: the first file that cannot be created or encoded raises
    WriteError. Files written before that point are left on disk.
    """

    error_class = WriteError

    def __init__(self, output_dir: Union[str, Path], base_name: str):
        """
        Initialize FrameWriter component.

        Args:
            output_dir: Directory receiving the PNG files, created if missing
            base_name: Prefix for every file name
        """
        super().__init__("FrameWriter")
        self.output_dir = Path(output_dir)
        self.base_name = base_name

    def process(self, data: GifData) -> List[Path]:
        """
        Write every frame in decode order.

        Args:
            data: Decoded container

        Returns:
            Paths of the written files, one per frame
        """
        ensure_output_dir(self.output_dir)

        written = []
        progress = ProgressReporter(data.frame_count, "Writing frames")
        for index, frame in enumerate(data.frames):
            path = frame_path(self.output_dir, self.base_name, index)
            self.logger.debug(f"Creating file for image {index}: '{path}'")
            try:
                with open(path, "wb") as fp:
                    frame.image.save(fp, format="PNG")
            except (OSError, ValueError) as e:
                raise WriteError(
                    f"Failed writing frame {index} to '{path}': {e}",
                    component=self.name,
                    details={'operation': 'write', 'path': str(path), 'index': index,
                             'written': len(written)}
                ) from e
            written.append(path)
            progress.update()

        progress.finish()
        data.add_processing_step(self.name, {'output_dir': str(self.output_dir),
                                             'base_name': self.base_name,
                                             'files': len(written)})
        self.logger.info(f"Wrote {len(written)} frames to '{self.output_dir}'")
        return written


def write_frames(data: GifData, output_dir: Union[str, Path], base_name: str) -> List[Path]:
    """
    Convenience function to write frames as PNG files.

    Returns:
        Paths of the written files
    """
    return FrameWriter(output_dir, base_name).execute(data)
