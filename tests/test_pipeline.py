import io

import numpy as np
import pytest
import requests
import urllib3
from PIL import Image

from gedit import pipeline
from gedit.chainable.basex import DecodeError, EncodeError, OpenError, OpenErrorKind, ReadError
from gedit.chainable.decodex import decode_gif
from gedit.chainable.readx import FrameOrder
from gedit.pipeline import PackOptions, UnpackOptions

from conftest import rgb


class RemoteBody(io.BytesIO):
    pass


class RemoteResponse:
    def __init__(self, body):
        self.raw = RemoteBody(body)
        self.status_code = 200
        self.closed = False

    def raise_for_status(self):
        pass

    def close(self):
        self.closed = True


def png_names(directory):
    return sorted(path.name for path in directory.iterdir() if path.suffix == ".png")


def test_unpack_then_pack_round_trip(tmp_path, sample_gif, expected_rgb):
    frames_dir = tmp_path / "frames"

    unpacked = pipeline.unpack(str(sample_gif), UnpackOptions(output_dir=frames_dir))
    assert unpacked.ok
    assert unpacked.frame_count == 3
    assert (unpacked.width, unpacked.height) == (4, 3)
    assert png_names(frames_dir) == ["anim_0.png", "anim_1.png", "anim_2.png"]

    out = tmp_path / "repacked.gif"
    packed = pipeline.pack(frames_dir, PackOptions(output_file=out))
    assert packed.ok
    assert packed.paths == [out]

    with open(out, "rb") as fp:
        data = decode_gif(fp)
    assert data.frame_count == 3
    assert data.delays == [0, 0, 0]
    assert data.loop == 0
    for frame, expected in zip(data.frames, expected_rgb):
        assert np.array_equal(rgb(frame.image), expected)


def test_unpack_defaults_to_source_directory(tmp_path, sample_gif):
    result = pipeline.unpack(str(sample_gif))

    assert result.ok
    assert result.paths == [tmp_path / f"anim_{i}.png" for i in range(3)]


def test_unpack_remote_writes_to_output(tmp_path, monkeypatch, pillow_gif_bytes):
    responses = []

    def fake_get(session, url, **kwargs):
        assert kwargs["stream"] is True
        responses.append(RemoteResponse(pillow_gif_bytes))
        return responses[-1]

    monkeypatch.setattr(requests.Session, "get", fake_get)
    monkeypatch.chdir(tmp_path)

    result = pipeline.unpack("https://example.com/media/cat.gif?x=1")

    assert result.ok
    assert png_names(tmp_path / "output") == ["cat_0.png", "cat_1.png", "cat_2.png"]
    assert responses[0].closed


def test_unpack_missing_source(tmp_path):
    result = pipeline.unpack(str(tmp_path / "missing.gif"))

    assert not result.ok
    assert isinstance(result.error, OpenError)
    assert result.error.kind is OpenErrorKind.NOT_FOUND
    assert result.paths == []


def test_unpack_corrupt_gif_writes_nothing(tmp_path):
    source = tmp_path / "bad.gif"
    source.write_bytes(b"GIF89a\x04\x00\x03\x00garbage")

    result = pipeline.unpack(str(source))

    assert isinstance(result.error, DecodeError)
    assert png_names(tmp_path) == []


def test_pack_empty_directory_creates_no_file(tmp_path):
    frames_dir = tmp_path / "frames"
    frames_dir.mkdir()
    out = tmp_path / "out.gif"

    result = pipeline.pack(frames_dir, PackOptions(output_file=out))

    assert isinstance(result.error, EncodeError)
    assert not out.exists()


def test_pack_non_image_leaves_output_untouched(tmp_path, sample_gif_data):
    frames_dir = tmp_path / "frames"
    frames_dir.mkdir()
    (frames_dir / "readme.txt").write_text("hello")
    out = tmp_path / "out.gif"
    out.write_bytes(b"previous")

    result = pipeline.pack(frames_dir, PackOptions(output_file=out))

    assert isinstance(result.error, DecodeError)
    assert out.read_bytes() == b"previous"


def test_pack_rgb_png_is_encode_error(tmp_path):
    frames_dir = tmp_path / "frames"
    frames_dir.mkdir()
    Image.new("RGB", (2, 2), (1, 2, 3)).save(frames_dir / "a.png", format="PNG")

    result = pipeline.pack(frames_dir, PackOptions(output_file=tmp_path / "out.gif"))

    assert isinstance(result.error, EncodeError)
    assert "a.png" in str(result.error)


def test_pack_missing_directory(tmp_path):
    result = pipeline.pack(tmp_path / "missing", PackOptions(output_file=tmp_path / "out.gif"))

    assert isinstance(result.error, ReadError)


def test_pack_truncates_existing_output(tmp_path, sample_gif):
    frames_dir = tmp_path / "frames"
    pipeline.unpack(str(sample_gif), UnpackOptions(output_dir=frames_dir))
    fresh = tmp_path / "fresh.gif"
    stale = tmp_path / "stale.gif"
    stale.write_bytes(b"x" * 10000)

    assert pipeline.pack(frames_dir, PackOptions(output_file=fresh)).ok
    assert pipeline.pack(frames_dir, PackOptions(output_file=stale)).ok

    assert stale.read_bytes() == fresh.read_bytes()


def test_pack_order_and_loop_options(tmp_path, sample_gif):
    frames_dir = tmp_path / "frames"
    pipeline.unpack(str(sample_gif), UnpackOptions(output_dir=frames_dir))
    out = tmp_path / "out.gif"

    result = pipeline.pack(frames_dir, PackOptions(output_file=out, order=FrameOrder.LEXICOGRAPHIC, loop=None))

    assert result.ok
    with Image.open(out) as image:
        assert "loop" not in image.info
        assert image.n_frames == 3


class StalledBody(RemoteBody):
    def read(self, size=-1):
        raise urllib3.exceptions.ReadTimeoutError(None, "https://example.com/cat.gif", "Read timed out.")


def test_unpack_remote_timeout_while_reading(tmp_path, monkeypatch):
    response = RemoteResponse(b"")
    response.raw = StalledBody(b"")
    monkeypatch.setattr(requests.Session, "get", lambda session, url, **kwargs: response)
    monkeypatch.chdir(tmp_path)

    result = pipeline.unpack("https://example.com/cat.gif")

    assert isinstance(result.error, OpenError)
    assert result.error.kind is OpenErrorKind.TIMEOUT
    assert response.closed
    assert not (tmp_path / "output").exists()
