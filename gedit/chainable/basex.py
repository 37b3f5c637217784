"""
Base architecture for chainable GIF processing components.

This module provides the foundational classes and data structures shared by the
unpack and pack pipelines: the frame/container data model, the error taxonomy,
and logging support with full traceback capture.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple, List
from abc import ABC, abstractmethod
from enum import Enum
import logging
import time
import traceback
from pathlib import Path
from datetime import datetime

from PIL import Image


LOGGER_ROOT = "gedit"


@dataclass
class Frame:
    """A single still image of an animation plus its display delay."""
    image: Image.Image  # mode "P" once decoded; may be anything when read from disk
    delay: int = 0  # hundredths of a second
    source: Optional[str] = None  # filename the frame was read from, if any

    def __post_init__(self):
        if self.delay < 0:
            raise ValueError(f"Frame delay must be non-negative, got {self.delay}")

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    @property
    def is_paletted(self) -> bool:
        """True when the pixel buffer stores indices into a colour table."""
        return self.image.mode == "P"

    @property
    def pixels(self) -> np.ndarray:
        """Palette indices as a (height, width) uint8 array."""
        if not self.is_paletted:
            raise ValueError(f"Frame is not palette-indexed (mode {self.image.mode})")
        return np.asarray(self.image, dtype=np.uint8)

    @property
    def palette(self) -> np.ndarray:
        """Colour table as an (entries, 3) uint8 array."""
        flat = self.image.getpalette("RGB") or []
        return np.asarray(flat, dtype=np.uint8).reshape(-1, 3)

    @property
    def transparency(self) -> Optional[int]:
        """Index of the fully transparent palette entry, if there is one."""
        value = self.image.info.get("transparency")
        if isinstance(value, int):
            return value
        if isinstance(value, bytes):
            index = value.find(b"\x00")
            return index if index >= 0 else None
        if self.is_paletted and self.image.palette is not None and self.image.palette.mode == "RGBA":
            alpha = np.asarray(self.image.getpalette("RGBA"), dtype=np.uint8)[3::4]
            hits = np.flatnonzero(alpha == 0)
            return int(hits[0]) if hits.size else None
        return None


@dataclass
class StillImage:
    """One decoded still image file and the name it was found under."""
    image: Image.Image
    filename: str


@dataclass
class GifData:
    """Standardized container structure passed between pipeline components."""
    frames: List[Frame]
    width: int
    height: int
    loop: Optional[int] = None  # NETSCAPE loop count, 0 = forever, None = no loop block
    metadata: Dict[str, Any] = field(default_factory=dict)  # Processing history and parameters

    def __post_init__(self):
        """Validate GifData after initialization."""
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Invalid dimensions {self.width}x{self.height}")

        for index, frame in enumerate(self.frames):
            if frame.size != self.resolution:
                raise ValueError(
                    f"Frame {index} is {frame.width}x{frame.height}, "
                    f"container is {self.width}x{self.height}"
                )

    @property
    def frame_count(self) -> int:
        """Get the number of frames."""
        return len(self.frames)

    @property
    def resolution(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def delays(self) -> List[int]:
        return [frame.delay for frame in self.frames]

    def add_processing_step(self, component_name: str, parameters: Dict[str, Any]):
        """Add a processing step to the metadata history."""
        if 'processing_history' not in self.metadata:
            self.metadata['processing_history'] = []

        self.metadata['processing_history'].append({
            'component': component_name,
            'parameters': parameters.copy(),
            'timestamp': np.datetime64('now').astype(str)
        })


class LogManager:
    """Manages file logging for a processing run with full traceback support."""

    _log_file_path: Optional[Path] = None
    _file_handler: Optional[logging.FileHandler] = None
    _initialized = False

    @classmethod
    def initialize(cls, log_dir: str = "logs"):
        """Initialize the log manager with a clean log file for this processing run."""
        if cls._initialized:
            cls.cleanup()

        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        cls._log_file_path = log_path / f"gedit_{timestamp}.log"

        cls._file_handler = logging.FileHandler(cls._log_file_path, mode='w', encoding='utf-8')
        cls._file_handler.setLevel(logging.DEBUG)

        file_formatter = logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        cls._file_handler.setFormatter(file_formatter)

        cls._initialized = True

        root_logger = logging.getLogger(LOGGER_ROOT)
        root_logger.addHandler(cls._file_handler)

        cls.log_info("LogManager", f"Initialized logging to: {cls._log_file_path}")

    @classmethod
    def cleanup(cls):
        """Clean up logging resources."""
        if cls._file_handler:
            logging.getLogger(LOGGER_ROOT).removeHandler(cls._file_handler)
            cls._file_handler.close()
            cls._file_handler = None

        cls._initialized = False
        cls._log_file_path = None

    @classmethod
    def set_level(cls, level: int):
        logging.getLogger(LOGGER_ROOT).setLevel(level)

    @classmethod
    def log_info(cls, component: str, message: str):
        """Log an info message."""
        logging.getLogger(f'{LOGGER_ROOT}.{component}').info(message)

    @classmethod
    def log_error(cls, component: str, message: str, exception: Optional[Exception] = None):
        """Log an error message, with the full traceback going to the log file only."""
        logger = logging.getLogger(f'{LOGGER_ROOT}.{component}')
        logger.error(message)

        if exception is not None and cls._initialized:
            tb_str = ''.join(traceback.format_exception(type(exception), exception, exception.__traceback__))
            record = logger.makeRecord(logger.name, logging.DEBUG, __file__, 0,
                                       f"Full traceback:\n{tb_str}", None, None)
            cls._file_handler.handle(record)

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._initialized

    @classmethod
    def get_log_file_path(cls) -> Optional[Path]:
        """Get the current log file path."""
        return cls._log_file_path


class ProcessingError(Exception):
    """Base exception for GIF processing errors."""
    def __init__(self, message: str, component: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.component = component
        self.details = details or {}

    @property
    def path(self) -> Optional[str]:
        return self.details.get('path')

    @property
    def operation(self) -> Optional[str]:
        return self.details.get('operation')


class OpenErrorKind(Enum):
    NOT_FOUND = "not-found"
    PERMISSION_DENIED = "permission-denied"
    IO_ERROR = "io-error"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network-error"


class OpenError(ProcessingError):
    """A source could not be opened for reading."""
    def __init__(self, message: str, kind: OpenErrorKind = OpenErrorKind.IO_ERROR, component: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, component, details)
        self.kind = kind
        self.details.setdefault('kind', kind.value)


class DecodeError(ProcessingError):
    """A GIF or PNG byte stream is malformed or of the wrong format."""


class EncodeError(ProcessingError):
    """Frames cannot be assembled into a GIF."""


class WriteError(ProcessingError):
    """An output file or directory could not be written."""


class ReadError(ProcessingError):
    """An input directory could not be read."""


class ChainComponent(ABC):
    """Abstract base class for GIF processing components."""

    # Exception type unexpected failures are wrapped in
    error_class = ProcessingError

    def __init__(self, name: Optional[str] = None):
        self.name = name or self.__class__.__name__
        self.logger = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        """Set up logger for the component."""
        root = logging.getLogger(LOGGER_ROOT)
        if root.level == logging.NOTSET:
            root.setLevel(logging.INFO)

        logger = logging.getLogger(f"{LOGGER_ROOT}.{self.name}")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                f'[{self.name}] %(levelname)s: %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        return logger

    @abstractmethod
    def process(self, *args, **kwargs):
        """Run the component. Must be implemented by subclasses."""
        pass

    def execute(self, *args, **kwargs):
        """Run this component with timing, error logging and error wrapping."""
        start = time.perf_counter()
        try:
            result = self.process(*args, **kwargs)
        except Exception as e:
            error_msg = f"Processing failed: {str(e)}"
            LogManager.log_error(self.name, error_msg, e)

            if isinstance(e, ProcessingError):
                raise
            raise self.error_class(
                error_msg,
                component=self.name,
                details={'original_exception': type(e).__name__}
            ) from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        self.logger.info(f"Finished in {elapsed_ms:.0f}ms")
        return result


class ProgressReporter:
    """Simple progress reporter for per-frame operations."""

    def __init__(self, total_items: int, description: str = "Processing"):
        self.total_items = total_items
        self.current_item = 0
        self.description = description
        self.logger = logging.getLogger(f"{LOGGER_ROOT}.progress")

    def update(self, increment: int = 1):
        """Update progress by increment."""
        if self.total_items <= 0:
            return
        self.current_item = min(self.current_item + increment, self.total_items)

        percentage = (self.current_item / self.total_items) * 100
        if self.current_item % max(1, self.total_items // 10) == 0 or self.current_item == self.total_items:
            self.logger.debug(f"{self.description}: {percentage:.1f}% ({self.current_item}/{self.total_items})")

    def finish(self):
        """Mark progress as finished."""
        self.current_item = self.total_items
        self.logger.debug(f"{self.description}: Complete!")
