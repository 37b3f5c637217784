"""
Frame reading component.

Loads every file of a directory as a PNG still image, in a well defined order,
for packing into a GIF.

Every non-directory entry is treated as a frame: there is no extension filter,
so the directory must hold nothing but PNG files.
"""

import os
import re
from enum import Enum
from pathlib import Path
from typing import List, Union

from PIL import Image, UnidentifiedImageError

from . import ChainComponent, StillImage, ReadError, DecodeError, ProgressReporter


STILL_FORMAT = "PNG"
_DIGITS = re.compile(r"(\d+)")


class FrameOrder(Enum):
    NATURAL = "natural"  # digit runs compare as numbers: a_2 before a_10
    LEXICOGRAPHIC = "lexicographic"
    FILESYSTEM = "filesystem"  # directory enumeration order, unsorted


def natural_key(name: str):
    return [(0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in _DIGITS.split(name) if part]


def order_filenames(names: List[str], order: FrameOrder) -> List[str]:
    if order is FrameOrder.NATURAL:
        return sorted(names, key=lambda name: (natural_key(name), name))
    if order is FrameOrder.LEXICOGRAPHIC:
        return sorted(names)
    return list(names)


class FrameReader(ChainComponent):
    """Component for reading a directory of PNG frames."""

    error_class = ReadError

    def __init__(self, input_dir: Union[str, Path], order: FrameOrder = FrameOrder.NATURAL):
        """
        Initialize FrameReader component.

        Args:
            input_dir: Directory holding only PNG files
            order: How discovered file names are sequenced
        """
        super().__init__("FrameReader")
        self.input_dir = Path(input_dir)
        self.order = order

    def discover(self) -> List[str]:
        """List candidate frame files, skipping sub-directories."""
        details = {'operation': 'read', 'path': str(self.input_dir)}
        if not self.input_dir.exists():
            raise ReadError(f"Directory does not exist: '{self.input_dir}'",
                            component=self.name, details=details)
        if not self.input_dir.is_dir():
            raise ReadError(f"'{self.input_dir}' is not a directory",
                            component=self.name, details=details)

        names = []
        try:
            with os.scandir(self.input_dir) as entries:
                for entry in entries:
                    if entry.is_dir():
                        self.logger.debug(f"Skipping directory '{entry.name}'")
                        continue
                    self.logger.debug(f"Discovered file '{entry.name}'")
                    names.append(entry.name)
        except OSError as e:
            raise ReadError(f"Failed reading directory '{self.input_dir}': {e}",
                            component=self.name, details=details) from e

        self.logger.info(f"Discovered {len(names)} files in '{self.input_dir}'")
        return order_filenames(names, self.order)

    def _load(self, name: str) -> StillImage:
        path = self.input_dir / name
        try:
            fp = open(path, "rb")
        except OSError as e:
            raise ReadError(f"Failed opening '{path}': {e}", component=self.name,
                            details={'operation': 'read', 'path': str(path)}) from e

        details = {'operation': 'decode', 'path': str(path)}
        with fp:
            try:
                with Image.open(fp, formats=[STILL_FORMAT]) as image:
                    image.load()
                    return StillImage(image=image.copy(), filename=name)
            except UnidentifiedImageError as e:
                raise DecodeError(f"'{path}' is not a {STILL_FORMAT} image", component=self.name,
                                  details=details) from e
            except (OSError, SyntaxError, ValueError) as e:
                raise DecodeError(f"Failed decoding '{path}': {e}", component=self.name,
                                  details=details) from e

    def process(self) -> List[StillImage]:
        """
        Read every frame file.

        Returns:
            Decoded images with their file names, in frame order
        """
        names = self.discover()
        images = []
        progress = ProgressReporter(len(names), "Reading frames")
        for name in names:
            images.append(self._load(name))
            progress.update()
        progress.finish()
        return images


def read_frames(input_dir: Union[str, Path], order: FrameOrder = FrameOrder.NATURAL) -> List[StillImage]:
    """
    Convenience function to read a directory of PNG frames.

    Returns:
        StillImage records in frame order
    """
    return FrameReader(input_dir, order).execute()
