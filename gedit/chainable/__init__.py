"""
Chainable GIF processing components.

This package provides the single responsibility components that the unpack and
pack pipelines are assembled from: source opening, GIF decoding and encoding,
and PNG frame reading and writing.
"""

from .basex import (
    Frame, StillImage, GifData, ChainComponent, ProgressReporter, LogManager,
    ProcessingError, OpenError, OpenErrorKind, DecodeError, EncodeError, WriteError, ReadError,
)
from .openx import (
    SourceOrigin, SourceHandle, RemoteStream, FileReader, LocalFileReader, URLFileReader, SourceOpener,
    select_origin, open_source,
)
from .decodex import GifDecoder, decode_gif
from .encodex import GifEncoder, encode_gif, frames_from_images
from .writex import (
    FrameWriter, write_frames, frame_path, base_name_for, resolve_output_dir, ensure_output_dir,
)
from .readx import FrameReader, FrameOrder, read_frames

__all__ = [
    # Data model
    'Frame',
    'StillImage',
    'GifData',

    # Base classes
    'ChainComponent',
    'ProgressReporter',
    'LogManager',

    # Errors
    'ProcessingError',
    'OpenError',
    'OpenErrorKind',
    'DecodeError',
    'EncodeError',
    'WriteError',
    'ReadError',

    # Components
    'SourceOpener',
    'GifDecoder',
    'GifEncoder',
    'FrameWriter',
    'FrameReader',

    # Sources
    'SourceOrigin',
    'SourceHandle',
    'RemoteStream',
    'FileReader',
    'LocalFileReader',
    'URLFileReader',
    'select_origin',

    # Frame I/O helpers
    'FrameOrder',
    'frame_path',
    'base_name_for',
    'resolve_output_dir',
    'ensure_output_dir',
    'frames_from_images',

    # Convenience functions
    'open_source',
    'decode_gif',
    'encode_gif',
    'write_frames',
    'read_frames',
]
