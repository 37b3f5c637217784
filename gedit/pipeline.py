"""
Unpack and pack entry points.

Each entry point runs its components in order and reports a PipelineResult
instead of raising, so callers only have to inspect ``result.ok``.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from .chainable import (
    SourceOpener, GifDecoder, GifEncoder, FrameWriter, FrameReader, FrameOrder,
    ProcessingError, WriteError,
    base_name_for, resolve_output_dir, frames_from_images,
)


logger = logging.getLogger("gedit.pipeline")


@dataclass
class UnpackOptions:
    output_dir: Optional[Path] = None  # defaults next to a local source, ./output for URLs


@dataclass
class PackOptions:
    output_file: Path
    order: FrameOrder = FrameOrder.NATURAL
    loop: Optional[int] = 0


@dataclass
class PipelineResult:
    """Outcome of one unpack or pack run."""
    operation: str
    paths: List[Path] = field(default_factory=list)
    frame_count: int = 0
    width: int = 0
    height: int = 0
    error: Optional[ProcessingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _fail(result: PipelineResult, error: ProcessingError) -> PipelineResult:
    logger.info(f"{result.operation} failed in {error.component or 'pipeline'}: {error}")
    result.error = error
    return result


def unpack(source: str, options: Optional[UnpackOptions] = None) -> PipelineResult:
    """
    Split a GIF into ``{base}_{index}.png`` files.

    Args:
        source: Local path, or URL starting with ``http``
        options: Output directory override

    Returns:
        PipelineResult listing the written files
    """
    options = options or UnpackOptions()
    result = PipelineResult(operation="unpack")
    start = time.perf_counter()

    try:
        with SourceOpener().execute(source) as handle:
            data = GifDecoder().execute(handle)
            origin = handle.origin

        result.frame_count = data.frame_count
        result.width, result.height = data.resolution
        logger.info(f"Dimensions: {data.width}x{data.height}, frames: {data.frame_count}")

        output_dir = resolve_output_dir(options.output_dir, source, origin)
        logger.info(f"Writing frames to '{output_dir}'")
        result.paths = FrameWriter(output_dir, base_name_for(source)).execute(data)
    except ProcessingError as e:
        return _fail(result, e)

    logger.info(f"Finished unpacking in {(time.perf_counter() - start) * 1000:.0f}ms")
    return result


def pack(input_dir: Union[str, Path], options: PackOptions) -> PipelineResult:
    """
    Assemble a directory of paletted PNG files into one GIF.

    The GIF is encoded in memory first, so a failed pack leaves the output file
    untouched.

    Args:
        input_dir: Directory containing only PNG files
        options: Output file, frame order and loop count

    Returns:
        PipelineResult whose ``paths`` holds the GIF file
    """
    result = PipelineResult(operation="pack")
    output_file = Path(options.output_file)
    start = time.perf_counter()

    try:
        images = FrameReader(input_dir, options.order).execute()
        frames = frames_from_images(images, delay=0)
        encoded = GifEncoder(loop=options.loop).execute(frames)

        result.frame_count = len(frames)
        result.width, result.height = frames[0].size

        try:
            with open(output_file, "wb") as fp:
                fp.write(encoded)
        except OSError as e:
            raise WriteError(f"Failed writing '{output_file}': {e}",
                             details={'operation': 'write', 'path': str(output_file)}) from e
    except ProcessingError as e:
        return _fail(result, e)

    result.paths = [output_file]
    logger.info(f"Created '{output_file}' in {(time.perf_counter() - start) * 1000:.0f}ms")
    return result
