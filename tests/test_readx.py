import numpy as np
import pytest
from PIL import Image

from gedit.chainable.basex import DecodeError, ReadError
from gedit.chainable.readx import FrameOrder, FrameReader, natural_key, order_filenames, read_frames

from conftest import make_paletted, rgb


NAMES = ["a_10.png", "a_2.png", "a_1.png", "b.png", "a_0.png"]


def write_pngs(directory, names, frame_indices):
    for i, name in enumerate(names):
        make_paletted(frame_indices[i % 3]).save(directory / name, format="PNG")


def test_natural_order():
    assert order_filenames(NAMES, FrameOrder.NATURAL) == ["a_0.png", "a_1.png", "a_2.png", "a_10.png", "b.png"]


def test_lexicographic_order():
    assert order_filenames(NAMES, FrameOrder.LEXICOGRAPHIC) == ["a_0.png", "a_1.png", "a_10.png", "a_2.png", "b.png"]


def test_filesystem_order_is_untouched():
    assert order_filenames(NAMES, FrameOrder.FILESYSTEM) == NAMES


def test_natural_key_handles_leading_digits():
    names = ["10.png", "9.png", "x.png"]

    assert sorted(names, key=natural_key) == ["9.png", "10.png", "x.png"]


def test_reads_frames_in_natural_order(tmp_path, frame_indices):
    write_pngs(tmp_path, ["f_10.png", "f_2.png", "f_1.png"], frame_indices)

    images = read_frames(tmp_path)

    assert [image.filename for image in images] == ["f_1.png", "f_2.png", "f_10.png"]
    assert np.array_equal(np.asarray(images[0].image), frame_indices[2])
    assert all(image.image.mode == "P" for image in images)


def test_filesystem_order_reads_every_file(tmp_path, frame_indices):
    write_pngs(tmp_path, ["c.png", "a.png", "b.png"], frame_indices)

    images = read_frames(tmp_path, FrameOrder.FILESYSTEM)

    assert sorted(image.filename for image in images) == ["a.png", "b.png", "c.png"]


def test_subdirectories_are_skipped(tmp_path, frame_indices):
    write_pngs(tmp_path, ["a.png"], frame_indices)
    (tmp_path / "nested").mkdir()
    write_pngs(tmp_path / "nested", ["b.png"], frame_indices)

    images = read_frames(tmp_path)

    assert [image.filename for image in images] == ["a.png"]


def test_empty_directory_gives_no_frames(tmp_path):
    assert read_frames(tmp_path) == []


def test_missing_directory(tmp_path):
    with pytest.raises(ReadError) as excinfo:
        read_frames(tmp_path / "missing")

    assert excinfo.value.operation == "read"


def test_file_instead_of_directory(tmp_path):
    path = tmp_path / "frame.png"
    path.write_bytes(b"")

    with pytest.raises(ReadError):
        FrameReader(path).execute()


def test_non_image_file_is_decode_error(tmp_path, frame_indices):
    write_pngs(tmp_path, ["a.png"], frame_indices)
    (tmp_path / "notes.txt").write_text("not an image")

    with pytest.raises(DecodeError) as excinfo:
        read_frames(tmp_path)

    assert "notes.txt" in str(excinfo.value)
    assert excinfo.value.component == "FrameReader"


def test_gif_file_is_rejected(tmp_path, frame_indices):
    make_paletted(frame_indices[0]).save(tmp_path / "a.gif", format="GIF")

    with pytest.raises(DecodeError):
        read_frames(tmp_path)


def test_truncated_png_is_decode_error(tmp_path, frame_indices):
    make_paletted(frame_indices[0]).save(tmp_path / "a.png", format="PNG")
    data = (tmp_path / "a.png").read_bytes()
    (tmp_path / "a.png").write_bytes(data[:40])

    with pytest.raises(DecodeError):
        read_frames(tmp_path)


def test_rgb_png_is_read_unchanged(tmp_path):
    pixels = np.full((2, 2, 3), 7, dtype=np.uint8)
    Image.fromarray(pixels).save(tmp_path / "a.png", format="PNG")

    images = read_frames(tmp_path)

    assert images[0].image.mode == "RGB"
    assert np.array_equal(rgb(images[0].image), pixels)
